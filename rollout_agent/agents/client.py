"""
LLM client selection based on configuration.
"""
import os

from agent_framework.openai import OpenAIChatClient
from agent_framework.azure import AzureOpenAIChatClient
from azure.identity import AzureCliCredential

from rollout_agent.config import Config


class LLMClient:
    """Selects and initializes the chat client used by the Kubernetes agent."""
    def __init__(self, config: Config):
        self.model = config.llm_default_model
        if config.llm_use_azure:
            self._client = AzureOpenAIChatClient(credential=AzureCliCredential())
            self.provider = "azure"
        else:
            api_key = os.environ.get(config.llm_api_key_env)
            if not api_key:
                raise ValueError(
                    f"OpenAI API key not found: set the {config.llm_api_key_env} environment variable"
                )
            self._client = OpenAIChatClient(
                api_key=api_key,
                base_url=config.llm_base_url,
                model_id=self.model,
            )
            self.provider = "openai"

    def get_client(self):
        """Returns the initialized chat client."""
        return self._client

    def get_provider(self) -> str:
        """Returns the LLM provider name ("azure" or "openai")."""
        return self.provider
