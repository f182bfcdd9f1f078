# login_api/report.py
import logging
from typing import Any, Dict

import httpx

logger = logging.getLogger(__name__)


def outcome_payload(site: str, outcome: Any, session_id: str | None = None) -> Dict[str, Any]:
    return {"session_id": session_id, "source": "login", "site": site, "outcome": outcome.model_dump(mode="json")}


def post_outcome(control_plane_url: str, token: str | None, site: str, outcome: Any, session_id: str | None = None) -> bool:
    """Send one outcome to the control plane; failures are logged, never raised."""
    try:
        url = f"{control_plane_url.rstrip('/')}/api/login-attempts"
        headers = {"Authorization": f"Bearer {token}"} if token else {}

        with httpx.Client(timeout=30) as client:
            response = client.post(url, json=outcome_payload(site, outcome, session_id), headers=headers)
            response.raise_for_status()
        return True
    except httpx.HTTPError as e:
        # Log error but don't fail the attempt
        logger.warning(f"Failed to post outcome to control plane: {e}")
        return False
