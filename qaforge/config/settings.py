from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel
import yaml
import os

class ChunkingConfig(BaseModel):
    text_split_min_length: int = 1500
    text_split_max_length: int = 2000

class TaskConfig(BaseModel):
    concurrency_limit: int = 2
    question_generation_length: int = 240   # characters of chunk text per generated question
    item_timeout: float | None = None       # seconds per batch item, None = unbounded
    optimize_cot: bool = True

class LLMConfig(BaseModel):
    provider: str = "openrouter"
    base_url: str = "https://openrouter.ai/api/v1"
    model: str = "deepseek/deepseek-r1"
    fallback_model: str = "mistralai/mistral-7b-instruct"
    max_tokens: int = 8192
    temperature: float = 0.7
    top_p: float = 0.9
    timeout: float = 120.0
    max_retries: int = 3
    retry_base_delay: float = 2.0

class StorageConfig(BaseModel):
    data_dir: str = "./data/records"

class AppSettings(BaseSettings):
    chunking: ChunkingConfig = ChunkingConfig()
    task: TaskConfig = TaskConfig()
    llm: LLMConfig = LLMConfig()
    storage: StorageConfig = StorageConfig()
    openrouter_api_key: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

def load_settings(config_path: str = "qaforge/config/config.yaml") -> AppSettings:
    """Loads settings from config.yaml and applies env overrides."""

    # Try multiple paths for convenience during testing vs running
    paths_to_try = [
        config_path,
        "config.yaml",
        "config/config.yaml",
        os.path.join(os.path.dirname(__file__), "config.yaml")
    ]

    yaml_data = {}
    for path in paths_to_try:
        if os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                yaml_data = yaml.safe_load(f) or {}
            break

    # Manually map yaml sections to our sub-models
    return AppSettings(
        chunking=ChunkingConfig(**yaml_data.get("chunking", {})),
        task=TaskConfig(**yaml_data.get("task", {})),
        llm=LLMConfig(**yaml_data.get("llm", {})),
        storage=StorageConfig(**yaml_data.get("storage", {}))
    )

# Global settings instance
settings = load_settings()
