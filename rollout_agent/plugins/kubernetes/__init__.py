from rollout_agent.plugins.kubernetes.kubernetes_plugin import KubernetesPlugin

__all__ = ["KubernetesPlugin"]
