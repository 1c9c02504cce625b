"""WebSocket intake flow: scripted questions -> symptom draft -> optional save."""

import json
import logging

from fastapi import WebSocket, WebSocketDisconnect

from healthtrack.errors import InputError
from healthtrack.models import IntakeMessage, IntakeMessageType
from healthtrack.storage.base import PatientStore
from healthtrack.symptoms.intake import build_symptom_record
from healthtrack.symptoms.session import IntakeSession

logger = logging.getLogger(__name__)


async def _send(ws: WebSocket, msg_type: IntakeMessageType, data: dict) -> None:
    """Send a typed JSON message to the client."""
    msg = IntakeMessage(type=msg_type, data=data)
    await ws.send_text(msg.model_dump_json())


def build_question_payload(session: IntakeSession) -> dict:
    return {
        "sessionId": session.session_id,
        "question": session.next_question,
        "questionIndex": session.question_index,
        "isComplete": session.is_complete,
    }


async def complete_session(
    session: IntakeSession,
    store: PatientStore | None,
    patient_id: str | None,
) -> dict:
    """Build the completion payload, saving the symptom when a patient is attached."""
    draft = session.draft
    payload = {
        "sessionId": session.session_id,
        "draft": draft.model_dump(),
        "saved": False,
        "symptom": None,
    }
    if store is None or not patient_id:
        return payload

    try:
        record = build_symptom_record(patient_id, draft)
    except InputError as exc:
        logger.info("Intake session %s not saved: %s", session.session_id, exc.detail)
        payload["error"] = exc.detail
        return payload

    await store.add_symptom(record)
    logger.info("Intake session %s saved symptom %s", session.session_id, record.id)
    payload["saved"] = True
    payload["symptom"] = record.model_dump(mode="json", by_alias=True)
    return payload


async def handle_intake_websocket(
    ws: WebSocket,
    store: PatientStore | None = None,
    patient_id: str | None = None,
) -> None:
    """Main WebSocket handler for a single intake session."""
    await ws.accept()
    session = IntakeSession()
    logger.info("Intake client connected (session=%s).", session.session_id)

    try:
        while True:
            raw = await ws.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await _send(ws, IntakeMessageType.ERROR, {"message": "Failed to process message"})
                continue
            if not isinstance(message, dict):
                await _send(ws, IntakeMessageType.ERROR, {"message": "Failed to process message"})
                continue

            action = message.get("type")

            if action == "start_session":
                session.reset()
                await _send(
                    ws,
                    IntakeMessageType.SESSION_READY,
                    {
                        "sessionId": session.session_id,
                        "question": session.current_question,
                    },
                )

            elif action == "record_response":
                session.record_response(message.get("response"))
                if session.is_complete:
                    payload = await complete_session(session, store, patient_id)
                    await _send(ws, IntakeMessageType.SESSION_COMPLETE, payload)
                else:
                    await _send(
                        ws,
                        IntakeMessageType.NEXT_QUESTION,
                        build_question_payload(session),
                    )

            elif action == "get_current_question":
                payload = build_question_payload(session)
                payload["question"] = session.current_question
                await _send(ws, IntakeMessageType.CURRENT_QUESTION, payload)

            else:
                await _send(
                    ws,
                    IntakeMessageType.ERROR,
                    {"message": f"Unknown message type: {action!r}"},
                )

    except WebSocketDisconnect:
        logger.info("Intake client disconnected (session=%s).", session.session_id)
