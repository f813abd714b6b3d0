from __future__ import annotations
import os

# OpenAI Configuration (text, vision and translation)
OPENAI_API_KEY: str | None = os.getenv("OPENAI_API_KEY")
OPENAI_BASE_URL: str | None = os.getenv("OPENAI_BASE_URL")
LLM_MODEL: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
VISION_MODEL: str = os.getenv("VISION_MODEL", "gpt-4o-mini")
LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.3"))
LLM_MAX_TOKENS: int = int(os.getenv("LLM_MAX_TOKENS", "600"))

# Hugging Face hosted image classifier
HF_TOKEN: str | None = os.getenv("HF_TOKEN")
HF_MODEL_ID: str = os.getenv(
    "HF_MODEL_ID", "linkanjarad/mobilenet_v2_1.0_224-plant-disease-identification"
)
HF_INFERENCE_URL: str = os.getenv(
    "HF_INFERENCE_URL", "https://router.huggingface.co/hf-inference/models"
)

# Timeouts and retries
PROVIDER_TIMEOUT_SECONDS: float = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "12"))
GENERATION_TIMEOUT_SECONDS: float = float(os.getenv("GENERATION_TIMEOUT_SECONDS", "90"))
MAX_RETRIES: int = int(os.getenv("MAX_RETRIES", "1"))
CIRCUIT_FAILURE_THRESHOLD: int = int(os.getenv("CIRCUIT_FAILURE_THRESHOLD", "5"))
CIRCUIT_RECOVERY_SECONDS: int = int(os.getenv("CIRCUIT_RECOVERY_SECONDS", "60"))

# Knowledge base
KNOWLEDGE_LOOKUP_LIMIT: int = int(os.getenv("KNOWLEDGE_LOOKUP_LIMIT", "3"))
KNOWLEDGE_SEED_PATH: str | None = os.getenv("KNOWLEDGE_SEED_PATH")
KNOWLEDGE_CACHE_TTL: int = int(os.getenv("KNOWLEDGE_CACHE_TTL", "300"))

# Localization
DEFAULT_LANGUAGE: str = os.getenv("DEFAULT_LANGUAGE", "en").lower()

# Job storage
JOB_STORE: str = os.getenv("JOB_STORE", "memory").lower()
REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")
JOB_TTL_SECONDS: int = int(os.getenv("JOB_TTL_SECONDS", str(7 * 24 * 3600)))

# Real-time delivery
HEARTBEAT_INTERVAL: int = int(os.getenv("HEARTBEAT_INTERVAL", "30"))

# Uploads
MAX_IMAGE_BYTES: int = int(os.getenv("MAX_IMAGE_BYTES", str(8 * 1024 * 1024)))
VISION_TREATMENT_ADVICE: bool = os.getenv("VISION_TREATMENT_ADVICE", "true").lower() == "true"

# OpenTelemetry Configuration
OTEL_EXPORTER_OTLP_ENDPOINT: str | None = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
OTEL_SERVICE_NAME: str = os.getenv("OTEL_SERVICE_NAME", "agrisense-advisory")

# Langfuse Configuration
LANGFUSE_PUBLIC_KEY: str | None = os.getenv("LANGFUSE_PUBLIC_KEY")
LANGFUSE_SECRET_KEY: str | None = os.getenv("LANGFUSE_SECRET_KEY")
LANGFUSE_HOST: str = os.getenv("LANGFUSE_HOST", "https://cloud.langfuse.com")

# HTTP surface
LOG_STRUCTURED: bool = os.getenv("LOG_STRUCTURED", "true").lower() == "true"
CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
