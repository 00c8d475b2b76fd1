"""Reasoning engine: the Kubernetes agent and its LLM client."""
