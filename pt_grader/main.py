"""
pt_grader web service.

Run with:

    uvicorn pt_grader.main:app --host 0.0.0.0 --port 8000

WebSocket /ws/{exercise} accepts one JSON message per pose frame or GPS fix
and answers each with the grading snapshot for that input.
"""

import json
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict

from .config import GraderConfig
from .graders import AnyGrader, GPSFix, RunningGrader, build_grader, get_available_exercises
from .landmarks import PoseFrame
from .scoring import get_apft_score

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

GRADER_CONFIG = GraderConfig.from_env()

# Close code for a session that cannot be graded (unknown exercise).
POLICY_VIOLATION = 1008

app = FastAPI(title="pt_grader")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ScoreRequest(BaseModel):
    exercise: str
    metric: float
    age: Optional[int] = None
    gender: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


@app.get("/")
def read_root():
    return {
        "message": "pt_grader - exercise repetition and form grading API",
        "available_exercises": get_available_exercises(),
    }


@app.post("/score")
async def score(request: ScoreRequest):
    """Standardized points for a rep count, or a run time in seconds."""
    try:
        points = get_apft_score(request.exercise, request.metric, request.age, request.gender)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"exercise": request.exercise, "metric": request.metric, "score": points}


def _snapshot(grader: AnyGrader, payload: Dict[str, Any]) -> Dict[str, Any]:
    payload["rep_count"] = grader.rep_count
    payload["form_score_total"] = grader.form_score
    payload["problem_joints"] = grader.problem_joints
    payload["exercise"] = grader.name
    return payload


def handle_command(grader: AnyGrader, command_data: Dict[str, Any]) -> Dict[str, Any]:
    """Dispatch a control message (reset, start_run, stop_run, summary)."""
    command = command_data.get("command")
    timestamp = command_data.get("ts")

    if command == "reset":
        grader.reset()
        return {"status": "reset", "exercise": grader.name}
    if command == "summary":
        summary = grader.summary()
        summary["apft_score"] = grader.get_apft_score(command_data.get("age"), command_data.get("gender"))
        return {"status": "summary", "summary": summary}
    if isinstance(grader, RunningGrader):
        if command == "start_run":
            grader.start_run(timestamp)
            return {"status": "started", "state": grader.state}
        if command == "stop_run":
            grader.stop_run(timestamp)
            return {"status": "stopped", "state": grader.state, "summary": grader.summary()}

    return {"error": f"Unsupported command '{command}' for {grader.name}"}


def handle_message(grader: AnyGrader, message: Dict[str, Any]) -> Dict[str, Any]:
    """Route one decoded client message to the grader."""
    if "command" in message:
        return handle_command(grader, message)

    if "gps" in message:
        if not isinstance(grader, RunningGrader):
            return {"error": f"GPS fixes are not accepted for {grader.name}"}
        result = grader.update_gps_position(GPSFix.from_dict(message["gps"]))
        payload = result.to_dict()
        payload["distance_meters"] = grader.distance
        payload["progress"] = grader.progress
        payload["pace_per_mile"] = grader.pace_per_mile()
        payload["current_pace"] = grader.current_pace
        return _snapshot(grader, payload)

    if "landmarks" in message:
        frame = PoseFrame.from_dicts(message["landmarks"], message["ts"])
        result = grader.process_frame(frame)
        return _snapshot(grader, result.to_dict())

    return {"error": "Expected one of: landmarks, gps, command"}


@app.websocket("/ws/{exercise}")
async def websocket_endpoint(websocket: WebSocket, exercise: str):
    logger.info("WebSocket connection attempt received (exercise=%s).", exercise)
    await websocket.accept()

    try:
        grader = build_grader(exercise, GRADER_CONFIG)
    except ValueError as config_error:
        logger.warning("Rejecting session: %s", config_error)
        await websocket.send_json({"error": str(config_error)})
        await websocket.close(code=POLICY_VIOLATION)
        return

    logger.info("WebSocket connection accepted.")

    try:
        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning("Received malformed data packet")
                await websocket.send_json({"error": "Malformed JSON"})
                continue
            if not isinstance(message, dict):
                logger.warning("Received non-object message")
                await websocket.send_json({"error": "Expected a JSON object"})
                continue

            try:
                response = handle_message(grader, message)
            except (KeyError, TypeError, ValueError, IndexError) as processing_error:
                logger.warning("Failed to process message: %s", processing_error)
                response = {"error": f"Invalid message: {processing_error}"}
            await websocket.send_json(response)

    except WebSocketDisconnect:
        logger.info("Client disconnected")
    except Exception as websocket_error:
        logger.error("WebSocket connection error: %s", websocket_error)
    finally:
        logger.info("Client connection closed (%s, %d reps)", grader.name, grader.rep_count)
