"""Tools available to the Kubernetes agent."""
