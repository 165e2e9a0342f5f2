"""Send one question to a running session orchestrator and print its progress.

Usage:
    1. Start the server:   python -m rag_orchestrator.main
    2. Ask a question:     python scripts/run_session.py "What is our refund policy?" [--stream]
"""

from __future__ import annotations

import argparse
import asyncio
import json

import httpx

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 180.0


def print_header(title: str) -> None:
    print(f"\n{'=' * 64}")
    print(f"  {title}")
    print(f"{'=' * 64}")


def print_result(data: dict) -> None:
    print_header("ANSWER")
    print(data["answer"])

    print_header("SESSION")
    print(f"  Strategy:     {data['strategy']} (confidence {data['plan_confidence']:.2f})")
    print(f"  State:        {data['state']}{' (caveated)' if data['caveated'] else ''}")
    print(f"  Latency:      {data['latency_ms']:.0f} ms")
    diag = data["diagnostics"]
    print(f"  Fallback:     level {diag['fallback_level_used']} threshold={diag['threshold_used']}")
    print(f"  Attempts:     {diag['retrieval_attempts']}")
    print(f"  Reasons:      {', '.join(diag['reason_codes']) or '-'}")

    print_header("REFERENCES")
    for ref in data["references"]:
        marker = "*" if ref["index"] in data["cited"] else " "
        print(f" {marker}[{ref['index']}] {ref['source']:<9} {ref['title'] or ref['url'] or ref['id']}")

    print_header("CRITIQUES")
    for c in data["critiques"]:
        print(
            f"  #{c['attempt_number']} action={c['action']:<8} "
            f"grounded={c['grounded']} coverage={c['coverage']:.2f}"
        )
        for issue in c["issues"]:
            print(f"       - {issue}")


async def run_once(client: httpx.AsyncClient, payload: dict) -> None:
    response = await client.post("/session", json=payload)
    response.raise_for_status()
    print_result(response.json())


async def run_streaming(client: httpx.AsyncClient, payload: dict) -> None:
    event = ""
    async with client.stream("POST", "/session/stream", json=payload) as response:
        response.raise_for_status()
        async for line in response.aiter_lines():
            if line.startswith("event: "):
                event = line.removeprefix("event: ")
            elif line.startswith("data: "):
                data = json.loads(line.removeprefix("data: "))
                if event == "answer_token":
                    print(data["text"], end="", flush=True)
                else:
                    print(f"\n[{event}] {json.dumps(data)}")


async def main(args: argparse.Namespace) -> None:
    payload: dict = {"query": args.query}
    if args.features:
        payload["features"] = json.loads(args.features)

    async with httpx.AsyncClient(base_url=args.base_url, timeout=DEFAULT_TIMEOUT) as client:
        if args.stream:
            await run_streaming(client, payload)
        else:
            await run_once(client, payload)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run a single orchestrated session")
    parser.add_argument("query", help="Question to ask")
    parser.add_argument(
        "--base-url",
        default=DEFAULT_BASE_URL,
        help=f"Base URL of the running server (default: {DEFAULT_BASE_URL})",
    )
    parser.add_argument("--stream", action="store_true", help="Use the SSE endpoint")
    parser.add_argument(
        "--features",
        default="",
        help='JSON object of per-request overrides, e.g. \'{"critic_max_retries": 2}\'',
    )
    asyncio.run(main(parser.parse_args()))
