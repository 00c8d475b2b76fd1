"""
Rollout Agent - AI-assisted canary analysis for Kubernetes rollouts.

Exposes a conversational diagnostic agent that investigates a cluster with
read-only tools and returns a structured promote/abort decision that a
deployment controller can consume.
"""

__version__ = "0.1.0"
__author__ = "Rollout Agent Contributors"
