from __future__ import annotations

from typing import Any, Dict

from varianceqa.analysis.controller import FormController


def public_session_payload(controller: FormController) -> Dict[str, Any]:
    state = controller.state
    payload = state.model_dump()
    payload["items"] = [item.model_dump() for item in controller.commentary_items()]
    payload["busy"] = state.busy
    payload["status_message"] = controller.status_message()
    return payload
