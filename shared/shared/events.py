import json
import uuid
from datetime import datetime, timezone


def build_event(event_type: str, data: dict) -> dict:
    return {
        "event_id": str(uuid.uuid4()),
        "event_type": event_type,
        "occurred_at": datetime.now(timezone.utc).isoformat(),
        "data": data,
    }


def build_decision_record(event_type: str, user_id: str, org_id: str | None, data: dict) -> dict:
    """
    Decision envelope for the real-time fan-out, which delivers by (user_id, org_id).
    """
    event = build_event(event_type, data)
    event["audience"] = {"user_id": user_id, "org_id": org_id}
    return event


def to_json(event: dict) -> str:
    return json.dumps(event, separators=(",", ":"), ensure_ascii=False, default=str)
