"""Flask API hosting many poll ledgers.

Endpoints:
- POST /polls -> create a poll {"title", "description", "options", "creator"}
- GET /polls -> every poll plus dashboard stats; GET /stats -> dashboard only
- GET /polls/<id> -> metadata and stats
- GET /polls/<id>/tallies -> ordered option keys with their encrypted tallies
- POST /polls/<id>/vote -> {"voter_id", "choice"}, encrypted server-side for demo clients
- POST /polls/<id>/ballot -> {"voter_id", "encrypted_choice": {key: [c1, c2]}}
- POST /polls/<id>/aggregate
- POST /polls/<id>/decrypt -> {"choice"} returns {"request_id"}
- POST /polls/<id>/oracle/deliver -> let the local oracle answer queued requests
- POST /polls/<id>/callback -> {"request_id", "cleartext", "proof"}
- POST /polls/<id>/abandon -> {"request_id", "reason"}
- GET /polls/<id>/events, GET /polls/<id>/results

Caller identity for the role guards is read from the ``X-Ledger-Caller``
header, which the authenticating proxy in front of this app must set. The
app itself does not authenticate anyone.
"""

from typing import Optional

from flask import Flask, jsonify, request

from .config import Config, LedgerConfig
from .errors import (
    ChoiceNotFound,
    CommitmentMismatch,
    DuplicateVote,
    InvalidBallot,
    InvalidProof,
    LedgerError,
    PollNotFound,
    UnauthorizedCaller,
    UnknownRequest,
)
from .store import PollStore

CALLER_HEADER = "X-Ledger-Caller"

_STATUS = {
    ChoiceNotFound: 404,
    UnknownRequest: 404,
    PollNotFound: 404,
    InvalidProof: 400,
    CommitmentMismatch: 400,
    InvalidBallot: 400,
    UnauthorizedCaller: 403,
    DuplicateVote: 403,
}


def _caller() -> Optional[str]:
    return request.headers.get(CALLER_HEADER)


def create_app(config: Optional[LedgerConfig] = None) -> Flask:
    app = Flask(__name__)
    store = PollStore(config or LedgerConfig.from_env())
    app.extensions["poll_store"] = store

    @app.errorhandler(LedgerError)
    def handle_ledger_error(e: LedgerError):
        status = next((code for cls, code in _STATUS.items() if isinstance(e, cls)), 400)
        return jsonify({"error": type(e).__name__, "detail": str(e)}), status

    @app.route("/polls", methods=["POST"])
    def create_poll():
        data = request.get_json(silent=True) or {}
        options = data.get("options") or Config.LEDGER_OPTIONS
        if not isinstance(options, list) or not all(isinstance(o, str) for o in options):
            return jsonify({"error": "options must be a list of strings"}), 400
        try:
            poll = store.create(
                options,
                title=str(data.get("title", "")),
                description=str(data.get("description", "")),
                creator=str(data.get("creator", "")),
            )
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        return jsonify({"status": "created", "poll": poll.to_dict()}), 201

    @app.route("/polls", methods=["GET"])
    def list_polls():
        return jsonify(
            {"polls": [p.to_dict() for p in store.list()], "stats": store.dashboard()}
        )

    @app.route("/stats", methods=["GET"])
    def dashboard():
        return jsonify(store.dashboard())

    @app.route("/polls/<poll_id>", methods=["GET"])
    def poll_info(poll_id):
        return jsonify(store.get(poll_id).to_dict())

    @app.route("/polls/<poll_id>/tallies", methods=["GET"])
    def tallies(poll_id):
        poll = store.get(poll_id)
        return jsonify(
            {
                "choices": poll.list_choice_keys(),
                "tallies": {k: list(poll.get_tally(k)) for k in poll.list_choice_keys()},
            }
        )

    @app.route("/polls/<poll_id>/vote", methods=["POST"])
    def vote(poll_id):
        poll = store.get(poll_id)
        data = request.get_json(silent=True) or {}
        voter_id = data.get("voter_id")
        choice = data.get("choice")
        if not isinstance(voter_id, str) or not isinstance(choice, str):
            return jsonify({"error": "missing voter_id or choice"}), 400
        if choice not in poll.registry:
            raise ChoiceNotFound(choice)
        vote_id = poll.cast(voter_id, choice)
        return jsonify({"status": "cast", "vote_id": vote_id}), 201

    @app.route("/polls/<poll_id>/ballot", methods=["POST"])
    def ballot(poll_id):
        poll = store.get(poll_id)
        data = request.get_json(silent=True) or {}
        voter_id = data.get("voter_id")
        slots = data.get("encrypted_choice")
        if not isinstance(voter_id, str) or not isinstance(slots, dict):
            return jsonify({"error": "missing voter_id or encrypted_choice"}), 400
        encrypted = {k: tuple(v) if isinstance(v, list) else v for k, v in slots.items()}
        vote_id = poll.submit(voter_id, encrypted)
        return jsonify({"status": "stored", "vote_id": vote_id}), 201

    @app.route("/polls/<poll_id>/aggregate", methods=["POST"])
    def aggregate(poll_id):
        poll = store.get(poll_id)
        folded = poll.aggregate(caller=_caller())
        return jsonify({"folded": folded, "cursor": poll.engine.cursor})

    @app.route("/polls/<poll_id>/decrypt", methods=["POST"])
    def decrypt(poll_id):
        poll = store.get(poll_id)
        data = request.get_json(silent=True) or {}
        choice = data.get("choice")
        if not isinstance(choice, str):
            return jsonify({"error": "missing choice"}), 400
        request_id = poll.request(choice, caller=_caller())
        return jsonify({"request_id": request_id}), 202

    @app.route("/polls/<poll_id>/oracle/deliver", methods=["POST"])
    def oracle_deliver(poll_id):
        results = store.deliver(poll_id)
        return jsonify(
            {"delivered": [{"request_id": r.request_id, "choice": r.choice_key, "count": r.count} for r in results]}
        )

    @app.route("/polls/<poll_id>/callback", methods=["POST"])
    def callback(poll_id):
        poll = store.get(poll_id)
        data = request.get_json(silent=True) or {}
        request_id = data.get("request_id")
        cleartext = data.get("cleartext")
        proof = data.get("proof")
        if not isinstance(request_id, int) or not isinstance(proof, dict):
            return jsonify({"error": "missing request_id or proof"}), 400
        result = poll.callback(request_id, cleartext, proof, caller=_caller())
        return jsonify({"choice": result.choice_key, "count": result.count})

    @app.route("/polls/<poll_id>/abandon", methods=["POST"])
    def abandon(poll_id):
        poll = store.get(poll_id)
        data = request.get_json(silent=True) or {}
        request_id = data.get("request_id")
        if not isinstance(request_id, int):
            return jsonify({"error": "missing request_id"}), 400
        poll.abandon(request_id, str(data.get("reason", "")), caller=_caller())
        return jsonify({"status": "abandoned", "request_id": request_id})

    @app.route("/polls/<poll_id>/events", methods=["GET"])
    def events(poll_id):
        return jsonify({"events": store.get(poll_id).events.to_dicts()})

    @app.route("/polls/<poll_id>/results", methods=["GET"])
    def results(poll_id):
        return jsonify({"results": store.get(poll_id).results()})

    return app


if __name__ == "__main__":
    from .config import configure_logging

    configure_logging()
    create_app().run(debug=True)
