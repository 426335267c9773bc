from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Ordering settings
    order_step: float = 1000.0

    # Storage settings
    workspace_path: Path = Path("data/workspace.json")

    # LLM settings
    anthropic_api_key: str | None = None
    llm_model: str = "claude-3-5-sonnet-20241022"
    llm_max_tokens: int = 2048
    default_children_prompt: str = "Generate the most relevant child nodes for this node."

    log_level: str = "INFO"  # Can be DEBUG, INFO, WARNING, ERROR, CRITICAL


settings = Settings()
