"""Small CLI for interacting with the poll ledger Flask server.

Usage examples:
    python cli.py create --title Lunch --option Alice --option Bob
    python cli.py list
    python cli.py vote --poll <id> --voter alice@example.org --choice Alice
    python cli.py aggregate --poll <id> --caller aggregator
    python cli.py decrypt --poll <id> --choice Alice
    python cli.py deliver --poll <id>
    python cli.py results --poll <id>

``--caller`` is sent as the X-Ledger-Caller header, which a deployment's
authenticating proxy would normally set.
"""

import argparse
import requests


BASE = "http://127.0.0.1:5000"


def _headers(caller=None):
    return {"X-Ledger-Caller": caller} if caller else {}


def _post(path: str, payload=None, caller=None):
    r = requests.post(f"{BASE}{path}", json=payload or {}, headers=_headers(caller), timeout=10)
    print(r.json())


def _get(path: str):
    r = requests.get(f"{BASE}{path}", timeout=10)
    print(r.json())


def main():
    p = argparse.ArgumentParser()
    sub = p.add_subparsers(dest="cmd")
    c = sub.add_parser("create")
    c.add_argument("--title", default="")
    c.add_argument("--option", action="append", dest="options")
    sub.add_parser("list")
    for name in ("vote", "aggregate", "decrypt", "deliver", "results", "poll"):
        s = sub.add_parser(name)
        s.add_argument("--poll", required=True)
        s.add_argument("--caller")
        if name == "vote":
            s.add_argument("--voter", required=True)
        if name in ("vote", "decrypt"):
            s.add_argument("--choice", required=True)
    args = p.parse_args()
    if args.cmd == "create":
        _post("/polls", {"title": args.title, "options": args.options})
    elif args.cmd == "list":
        _get("/polls")
    elif args.cmd == "vote":
        _post(f"/polls/{args.poll}/vote", {"voter_id": args.voter, "choice": args.choice})
    elif args.cmd == "aggregate":
        _post(f"/polls/{args.poll}/aggregate", caller=args.caller)
    elif args.cmd == "decrypt":
        _post(f"/polls/{args.poll}/decrypt", {"choice": args.choice}, caller=args.caller)
    elif args.cmd == "deliver":
        _post(f"/polls/{args.poll}/oracle/deliver")
    elif args.cmd == "results":
        _get(f"/polls/{args.poll}/results")
    elif args.cmd == "poll":
        _get(f"/polls/{args.poll}")
    else:
        p.print_help()


if __name__ == "__main__":
    main()
