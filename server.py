"""
Minimal Flask API that wires the chess coach into a browser UI.

Endpoints:
- POST   /api/match          -> start a match {mode: "pve"|"pvp", human_side: "white"|"black"}
- DELETE /api/match          -> new game (drop the current match, back to idle)
- POST   /api/match/move     -> board drop {from, to}; replies {result: "accept"|"snapback", state}
- POST   /api/match/bot-move -> ask the bot again after a failed bot turn
- POST   /api/match/chat     -> follow-up question about the current analysis {message}
- GET    /api/match/state    -> snapshot (fen, board revision, status, turn state, conversation, ...)

All match state lives on one asyncio loop (CoachRuntime); handlers only marshal calls onto it.
Clients poll /api/match/state and re-sync the board when board.revision changes.
"""
from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from src.llmchess_coach.config import SETTINGS
from src.llmchess_coach.errors import ChatBusy, NoActiveContext
from src.llmchess_coach.runtime import CoachRuntime
from src.llmchess_coach.session import parse_mode, parse_side

logging.basicConfig(level=getattr(logging, SETTINGS.log_level, logging.INFO), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = Flask(__name__)
RUNTIME = CoachRuntime()


def _state() -> dict:
    return RUNTIME.call(lambda coach: coach.snapshot())


@app.route("/api/match", methods=["POST"])
def start_match():
    data = request.get_json(force=True, silent=True) or {}
    try:
        mode = parse_mode(data.get("mode"))
        side = parse_side(data.get("human_side") or data.get("player_color"))
    except ValueError as exc:
        return jsonify({"error": "bad_request", "message": str(exc)}), 400
    RUNTIME.call(lambda coach: coach.start_match(mode, side))
    return jsonify(_state())


@app.route("/api/match", methods=["DELETE"])
def end_match():
    RUNTIME.call(lambda coach: coach.end_match())
    return jsonify(_state())


@app.route("/api/match/move", methods=["POST"])
def match_move():
    data = request.get_json(force=True, silent=True) or {}
    source = data.get("from")
    target = data.get("to")
    if not source or not target:
        return jsonify({"error": "bad_request", "message": "from and to are required"}), 400
    result = RUNTIME.call(lambda coach: coach.handle_drop(str(source), str(target)))
    return jsonify({"result": result, "state": _state()})


@app.route("/api/match/bot-move", methods=["POST"])
def match_bot_move():
    started = RUNTIME.call(lambda coach: coach.retry_bot_move())
    if not started:
        return jsonify({"error": "not_bot_turn", "state": _state()}), 409
    return jsonify(_state())


@app.route("/api/match/chat", methods=["POST"])
def match_chat():
    data = request.get_json(force=True, silent=True) or {}
    message = data.get("message") or ""
    try:
        RUNTIME.call(lambda coach: coach.submit_chat(message))
    except NoActiveContext as exc:
        return jsonify({"error": "no_active_context", "message": str(exc)}), 400
    except ChatBusy as exc:
        return jsonify({"error": "chat_busy", "message": str(exc)}), 409
    except ValueError as exc:
        return jsonify({"error": "bad_request", "message": str(exc)}), 400
    return jsonify(_state())


@app.route("/api/match/state", methods=["GET"])
def match_state():
    return jsonify(_state())


@app.after_request
def add_cors_headers(response):
    response.headers["Access-Control-Allow-Origin"] = request.headers.get("Origin", "*")
    response.headers["Access-Control-Allow-Credentials"] = "true"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, DELETE, OPTIONS"
    # Prevent caching so the UI always sees the freshest state
    response.headers["Cache-Control"] = "no-store, max-age=0"
    return response


@app.route("/api/<path:path>", methods=["OPTIONS"])
def cors_preflight(path: str):
    resp = app.make_response(("", 204))
    resp.headers["Access-Control-Allow-Origin"] = request.headers.get("Origin", "*")
    resp.headers["Access-Control-Allow-Credentials"] = "true"
    resp.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
    resp.headers["Access-Control-Allow-Methods"] = "GET, POST, DELETE, OPTIONS"
    return resp


if __name__ == "__main__":
    RUNTIME.start()
    app.run(host="0.0.0.0", port=8000, debug=False)
