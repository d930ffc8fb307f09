#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import time
from typing import Any

import httpx
from httpx import ConnectError

from availability_engine.infrastructure.events.signature import SIGNATURE_HEADER, TIMESTAMP_HEADER, sign_event


def build_payload(collection: str, document_id: str, company_id: str, status: str) -> dict[str, Any]:
    return {
        "collection": collection,
        "documentId": document_id,
        "before": None,
        "after": {
            "companyId": company_id,
            "status": status,
        },
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Send a test document-written event")
    parser.add_argument("--url", default="http://127.0.0.1:8001/events/document-written")
    parser.add_argument("--collection", default="service_bookings")
    parser.add_argument("--document-id", default="booking_123")
    parser.add_argument("--company", default="company_456")
    parser.add_argument("--status", default="confirmed")
    parser.add_argument("--secret", default="", help="EVENTS_SECRET for the signature header")
    args = parser.parse_args()

    payload = build_payload(args.collection, args.document_id, args.company, args.status)
    body = json.dumps(payload).encode("utf-8")

    headers = {"Content-Type": "application/json"}
    if args.secret:
        timestamp = int(time.time())
        headers[TIMESTAMP_HEADER] = str(timestamp)
        headers[SIGNATURE_HEADER] = sign_event(body, args.secret, timestamp)

    try:
        resp = httpx.post(args.url, content=body, headers=headers, timeout=10.0)
    except ConnectError:
        print("Connection refused. Is the FastAPI server running?")
        print("Try: uvicorn availability_engine.main:app --reload --port 8001")
        return

    print(resp.status_code)
    if resp.text:
        print(resp.text)


if __name__ == "__main__":
    main()
