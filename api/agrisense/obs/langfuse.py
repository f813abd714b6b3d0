from __future__ import annotations
from typing import Optional, Dict, Any
from agrisense.config import LANGFUSE_PUBLIC_KEY, LANGFUSE_SECRET_KEY, LANGFUSE_HOST
from agrisense.obs.logging_setup import get_logger

logger = get_logger(__name__)

_langfuse_client = None
_langfuse_checked = False

def get_langfuse_client():
    """Get Langfuse client instance, or None when keys are not configured."""
    global _langfuse_client, _langfuse_checked

    if _langfuse_checked:
        return _langfuse_client
    _langfuse_checked = True

    if not LANGFUSE_PUBLIC_KEY or not LANGFUSE_SECRET_KEY:
        logger.info("Langfuse not configured (missing API keys)")
        return None

    try:
        from langfuse import Langfuse
        _langfuse_client = Langfuse(
            public_key=LANGFUSE_PUBLIC_KEY,
            secret_key=LANGFUSE_SECRET_KEY,
            host=LANGFUSE_HOST
        )
        logger.info("Langfuse client initialized", host=LANGFUSE_HOST)
    except Exception as e:
        logger.warning("Langfuse initialization failed", error=str(e))
        _langfuse_client = None

    return _langfuse_client

def log_llm_call(
    name: str,
    model: str,
    input_text: str,
    output_text: str,
    usage: Optional[Dict[str, Any]] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> None:
    """Record one provider generation in Langfuse. Never raises."""
    client = get_langfuse_client()
    if not client:
        return

    try:
        trace = client.trace(name=name, input={"prompt": input_text[:2000]}, metadata=metadata or {})
        trace.generation(
            name=f"{name}_generation",
            model=model,
            input={"messages": [{"role": "user", "content": input_text}]},
            output={"content": output_text},
            usage=usage or {}
        )
    except Exception as e:
        logger.warning("Failed to log LLM call to Langfuse", error=str(e))
