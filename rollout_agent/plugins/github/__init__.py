from rollout_agent.plugins.github.github_pr_plugin import GitHubPRPlugin

__all__ = ["GitHubPRPlugin"]
