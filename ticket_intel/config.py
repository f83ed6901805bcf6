"""
Ticket Intelligence Pipeline - Configuration Management
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

from ticket_intel.models.schemas import ModelBackendConfig
from ticket_intel.errors import ConfigurationInvalid


DEFAULT_LOCAL_SERVER_PORT = "11434"

DEFAULT_PROMPT_TEMPLATE = """You are a Zendesk support assistant. Your task is to extract key information from a support ticket and provide a clean, structured summary for internal use.

Create the output in **this format**:

---

### 📝 SUMMARY
A brief 1–2 sentence overview of the customer's request or issue.

### 🐛 ISSUE DESCRIPTION
A clear explanation of the problem in the customer's own context.

### ✅ SUGGESTED NEXT STEPS
- Recommend 2–3 concrete actions for the support team.
- If needed, mention information to ask the customer.

---

💡 Guidelines:
- Do NOT include a metadata section.
- Do NOT write "Not provided" or "Not mentioned."
- If no action is needed, make that clear in the summary.
- Be concise. Prioritize signal over completeness."""


class Settings(BaseSettings):
    """Application settings"""

    # FastAPI
    fastapi_env: str = "development"
    fastapi_host: str = "0.0.0.0"
    fastapi_port: int = 8000

    # Zendesk (ticket source)
    zendesk_domain: str = ""
    zendesk_email: str = ""
    zendesk_api_token: str = ""

    # Model backend
    use_local_server: bool = False
    hosted_api_key: str = ""
    hosted_base_url: str = "https://api.openai.com/v1"
    hosted_model: str = "gpt-4o-mini"
    hosted_max_tokens: int = 300
    local_server_url: str = f"http://localhost:{DEFAULT_LOCAL_SERVER_PORT}"
    local_model_name: str = "llama3"
    local_probe_version: bool = True
    local_num_predict: int = 2048
    model_temperature: float = 0.2
    prompt_template: str = DEFAULT_PROMPT_TEMPLATE

    # Transport
    request_timeout: float = 60.0

    # Storage
    storage_backend: str = "memory"  # memory | supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_table: str = "kv_store"

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False
    )

    def model_backend(self) -> ModelBackendConfig:
        """Build the model backend configuration consumed by the pipeline"""
        return ModelBackendConfig(
            use_local_server=self.use_local_server,
            hosted_api_key=self.hosted_api_key,
            local_server_url=self.local_server_url,
            local_model_name=self.local_model_name,
            prompt_template=self.prompt_template or DEFAULT_PROMPT_TEMPLATE,
        )

    def validate_ticket_source_settings(self) -> None:
        """
        Fail fast when Zendesk credentials are missing

        Raises:
            ConfigurationInvalid: If domain, email or API token is empty
        """
        if not self.zendesk_domain:
            raise ConfigurationInvalid("Zendesk domain is required in settings")
        if not self.zendesk_email:
            raise ConfigurationInvalid("Zendesk email is required in settings")
        if not self.zendesk_api_token:
            raise ConfigurationInvalid("Zendesk API token is required in settings")


def validate_backend_config(config: ModelBackendConfig) -> None:
    """
    Validate model backend configuration before any network call

    Args:
        config: Model backend configuration

    Raises:
        ConfigurationInvalid: If a required credential or URL is missing
    """
    if not config.use_local_server and not config.hosted_api_key:
        raise ConfigurationInvalid(
            "Hosted API key is required when not using a local model server"
        )

    if config.use_local_server:
        if not config.local_server_url:
            raise ConfigurationInvalid(
                "Local server URL is required when using a local model server"
            )
        if not config.local_model_name:
            raise ConfigurationInvalid(
                "Local model name is required when using a local model server"
            )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
