from __future__ import annotations
import json
from typing import Dict, Any, Optional

def create_sse_message(data: Dict[str, Any], event_type: str = "message", event_id: Optional[str] = None) -> str:
    """Create a Server-Sent Event formatted message."""
    lines = []
    if event_id:
        lines.append(f"id: {event_id}")
    lines.append(f"event: {event_type}")
    json_data = json.dumps(data, ensure_ascii=False, default=str)
    for line in json_data.split("\n"):
        lines.append(f"data: {line}")
    return "\n".join(lines) + "\n\n"

def create_sse_heartbeat() -> str:
    """Create a heartbeat SSE message."""
    return "event: heartbeat\ndata: {\"type\":\"heartbeat\"}\n\n"
