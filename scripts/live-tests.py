#!/usr/bin/env python3
# This project was developed with assistance from AI tools.
"""Live test suite for the Bill Intake API.

Walks the widget's endpoints against a running server: hospital search,
incremental case progress saves, upload URLs, final submission and the
marketing hooks, plus error handling and the OpenAPI document.

Prerequisites:
  - API server running on localhost:8000
  - PostgreSQL migrated (alembic upgrade head)
  - S3-compatible storage for upload tests (skip with --no-storage)

Usage:
  ./scripts/live-tests.py                   # full suite
  ./scripts/live-tests.py --no-storage      # skip upload-url / submit-case
  ./scripts/live-tests.py --secret s3cr3t   # BILL_TOKEN_SECRET of the server
"""

import argparse
import asyncio
import sys
import time
import uuid

import httpx
import jwt

BASE = "http://localhost:8000"
HEADERS = {"Origin": "http://localhost:5173"}

# ---------------------------------------------------------------------------
# Test runner
# ---------------------------------------------------------------------------

PASS = 0
FAIL = 0
ERRORS: list[str] = []
SECTION = ""


def section(name: str):
    global SECTION
    SECTION = name
    print(f"\n{'=' * 60}")
    print(f"  {name}")
    print(f"{'=' * 60}\n")


def ok(name: str, passed: bool, detail: str = ""):
    global PASS, FAIL
    if passed:
        PASS += 1
        print(f"  PASS  {name}")
    else:
        FAIL += 1
        msg = f"[{SECTION}] {name}: {detail}" if detail else f"[{SECTION}] {name}"
        ERRORS.append(msg)
        print(f"  FAIL  {name} -- {detail}")


def has_keys(d: dict, *keys: str) -> bool:
    return all(k in d for k in keys)


# ---------------------------------------------------------------------------
# 1. Health
# ---------------------------------------------------------------------------

async def test_health(c: httpx.AsyncClient):
    section("Health")

    r = await c.get("/health")
    ok("GET /health returns 200", r.status_code == 200)
    ok("status is ok", r.json() == {"status": "ok"}, str(r.json()))

    r = await c.get("/api/ping")
    ok("GET /api/ping returns pong", r.json().get("message") == "pong")


# ---------------------------------------------------------------------------
# 2. Hospital search
# ---------------------------------------------------------------------------

async def test_hospitals(c: httpx.AsyncClient):
    section("Hospital Search")

    r = await c.get("/api/hospitals", params={"query": "rochester"})
    ok("GET /api/hospitals returns 200", r.status_code == 200)
    data = r.json()
    ok("returns a list", isinstance(data, list))
    ok("at most 7 results", len(data) <= 7, f"got {len(data)}")
    if data:
        ok("suggestion shape", has_keys(data[0], "id", "name", "subtitle"), str(data[0]))

    r = await c.get("/api/hospitals", params={"query": "r"})
    ok("single character returns nothing", r.json() == [], str(r.json()))


# ---------------------------------------------------------------------------
# 3. Case progress
# ---------------------------------------------------------------------------

async def save(c: httpx.AsyncClient, case_id: str, step: str, data, submission_id=None):
    return await c.put(
        "/api/case-progress",
        json={
            "caseId": case_id,
            "currentStep": step,
            "stepData": data,
            "submissionId": submission_id or str(uuid.uuid4()),
        },
    )


async def test_case_progress(c: httpx.AsyncClient) -> str:
    section("Case Progress")
    case_id = f"live-{uuid.uuid4()}"

    steps = [
        ("hospital", {"hospitalName": "Strong Memorial Hospital", "hospitalId": "us-ny-0004"}),
        ("billType", {"billType": "er"}),
        ("balance", {"balanceAmount": 1999.99, "inCollections": False}),
        ("insurance", {"insuranceStatus": "insured"}),
        ("contact", {"email": "live@example.com", "phone": "555-0100", "agreedToTerms": True}),
    ]
    for step, data in steps:
        r = await save(c, case_id, step, data)
        body = r.json()
        ok(f"save {step} returns 200", r.status_code == 200, r.text[:200])
        ok(f"save {step} echoes step", body.get("currentStep") == step, str(body))
        if body.get("warning"):
            print(f"        (sheet warning: {body['warning']})")

    submission_id = str(uuid.uuid4())
    first = await save(c, case_id, "billType", {"billType": "surgery"}, submission_id)
    replay = await save(c, case_id, "billType", {"billType": "surgery"}, submission_id)
    ok("replayed submission returns 200", replay.status_code == 200)
    ok("replay returns same submissionId",
       first.json().get("submissionId") == replay.json().get("submissionId") == submission_id)

    r = await c.post(
        "/api/case-progress",
        json={"caseId": case_id, "currentStep": "survey", "stepData": {"q1": "yes"}},
    )
    ok("POST accepted for unknown step", r.status_code == 200, r.text[:200])
    ok("server generates submissionId", bool(r.json().get("submissionId")))

    return case_id


async def test_case_progress_validation(c: httpx.AsyncClient):
    section("Case Progress Validation")

    cases = [
        ("missing caseId", {"currentStep": "hospital", "stepData": {"hospitalName": "X"}}),
        ("missing currentStep", {"caseId": "v1", "stepData": {}}),
        ("stepData not an object", {"caseId": "v1", "currentStep": "hospital", "stepData": []}),
        ("hospital without name", {"caseId": "v1", "currentStep": "hospital", "stepData": {}}),
        ("balance not a number", {"caseId": "v1", "currentStep": "balance",
                                  "stepData": {"balanceAmount": "lots"}}),
        ("contact bad email", {"caseId": "v1", "currentStep": "contact",
                               "stepData": {"email": "nope", "phone": "555"}}),
        ("payload too large", {"caseId": "v1", "currentStep": "survey",
                               "stepData": {"blob": "x" * 40_000}}),
    ]
    for name, body in cases:
        r = await c.put("/api/case-progress", json=body)
        data = r.json()
        ok(f"{name} -> 400", r.status_code == 400, f"got {r.status_code}")
        ok(f"{name} -> success false", data.get("success") is False and bool(data.get("error")))

    r = await c.put(
        "/api/case-progress",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    ok("invalid JSON -> 400", r.status_code == 400, f"got {r.status_code}")


# ---------------------------------------------------------------------------
# 4. Uploads and submission
# ---------------------------------------------------------------------------

async def test_uploads(c: httpx.AsyncClient, case_id: str, secret: str):
    section("Uploads and Submission")

    r = await c.post(
        "/api/upload-url",
        json={"fileName": "bill.pdf", "mimeType": "application/pdf", "size": 120_000, "caseId": case_id},
    )
    ok("POST /api/upload-url returns 200", r.status_code == 200, r.text[:200])
    data = r.json()
    ok("upload grant shape", has_keys(data, "signedUrl", "billToken", "storagePath", "caseId"), str(data))

    if data.get("signedUrl"):
        async with httpx.AsyncClient(timeout=15) as raw:
            put = await raw.put(
                data["signedUrl"],
                content=b"%PDF-1.4 live test",
                headers={"Content-Type": "application/pdf"},
            )
        ok("presigned PUT accepted", put.status_code in (200, 204), f"got {put.status_code}")

    r = await c.post(
        "/api/upload-url",
        json={"fileName": "bill.exe", "mimeType": "application/x-msdownload", "size": 10},
    )
    ok("unsupported type -> 415", r.status_code == 415, f"got {r.status_code}")

    r = await c.post(
        "/api/upload-url",
        json={"fileName": "bill.pdf", "mimeType": "application/pdf", "size": 500 * 1024 * 1024},
    )
    ok("oversized file -> 413", r.status_code == 413, f"got {r.status_code}")

    r = await c.post(
        "/api/upload-url",
        json={"fileName": "bill.pdf", "mimeType": "application/pdf", "size": 10,
              "caseId": f"missing-{uuid.uuid4()}", "checkDirectory": True},
    )
    ok("unknown case folder -> 404", r.status_code == 404, f"got {r.status_code}")

    token = jwt.encode({"caseId": case_id, "iat": int(time.time())}, secret, algorithm="HS256")
    r = await c.post(
        "/api/submit-case",
        json={"caseId": case_id, "email": "live@example.com", "billToken": token},
    )
    ok("POST /api/submit-case returns 200", r.status_code == 200, r.text[:200])
    body = r.json()
    ok("submission shape", has_keys(body, "ok", "storagePath", "doubleOptIn"), str(body))

    wrong = jwt.encode({"caseId": "someone-else", "iat": int(time.time())}, secret, algorithm="HS256")
    r = await c.post(
        "/api/submit-case",
        json={"caseId": case_id, "email": "live@example.com", "billToken": wrong},
    )
    ok("mismatched bill token -> 403", r.status_code == 403, f"got {r.status_code}")

    r = await c.post("/api/contact", json={"email": "live@example.com", "hospital": "Mercy"})
    ok("POST /api/contact returns 200", r.status_code == 200, r.text[:200])
    ok("contact assigns a caseId", bool(r.json().get("caseId")), str(r.json()))


# ---------------------------------------------------------------------------
# 5. Marketing hooks
# ---------------------------------------------------------------------------

async def test_marketing(c: httpx.AsyncClient):
    section("Double Opt-In and Analytics")

    r = await c.post("/api/brevo-doi", json={"email": "live@example.com"})
    ok("POST /api/brevo-doi returns 200", r.status_code == 200, r.text[:200])
    ok("status reported", r.json().get("status") in ("sent", "skipped", "failed"), str(r.json()))

    r = await c.post(
        "/api/analytics/track",
        json={"event": "Live Test", "properties": {"step": "hospital", "email": "scrubbed@example.com"}},
    )
    ok("POST /api/analytics/track returns 200", r.status_code == 200, r.text[:200])

    r = await c.post("/api/mixpanel/track", json={"type": "set", "distinctId": "live-1"})
    ok("legacy /api/mixpanel/track returns 200", r.status_code == 200, r.text[:200])

    r = await c.post("/api/analytics/track", json={"type": "alias"})
    ok("invalid type -> 400", r.status_code == 400, f"got {r.status_code}")

    r = await c.post("/api/analytics/track", json={"type": "identify"})
    ok("identify without distinctId -> 400", r.status_code == 400, f"got {r.status_code}")


# ---------------------------------------------------------------------------
# 6. Error handling
# ---------------------------------------------------------------------------

async def test_error_handling(c: httpx.AsyncClient):
    section("Error Handling (RFC 7807)")

    r = await c.get("/api/does-not-exist", headers={"x-request-id": "live-req-1"})
    ok("unknown route -> 404", r.status_code == 404)
    data = r.json()
    ok("problem details shape", has_keys(data, "type", "title", "status", "detail"), str(data))
    ok("request id echoed", data.get("request_id") == "live-req-1")

    r = await c.post("/api/upload-url", json={"fileName": ""})
    ok("invalid upload body -> 422", r.status_code == 422, f"got {r.status_code}")


# ---------------------------------------------------------------------------
# 7. OpenAPI
# ---------------------------------------------------------------------------

async def test_openapi(c: httpx.AsyncClient):
    section("OpenAPI Specification")

    r = await c.get("/openapi.json")
    ok("GET /openapi.json returns 200", r.status_code == 200)
    paths = r.json().get("paths", {})
    for path in ("/api/case-progress", "/api/upload-url", "/api/submit-case",
                 "/api/contact", "/api/brevo-doi", "/api/analytics/track", "/api/hospitals"):
        ok(f"documents {path}", path in paths)
    ok("legacy mixpanel path hidden", "/api/mixpanel/track" not in paths)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

async def main():
    parser = argparse.ArgumentParser(description="Live test suite for the Bill Intake API")
    parser.add_argument("--no-storage", action="store_true",
                        help="Skip upload-url and submit-case tests (requires S3)")
    parser.add_argument("--secret", default="dev-secret-change-me",
                        help="BILL_TOKEN_SECRET the server is running with")
    args = parser.parse_args()

    print("=" * 60)
    print("  LIVE TEST SUITE -- Bill Intake API")
    print("=" * 60)

    async with httpx.AsyncClient(base_url=BASE, headers=HEADERS, timeout=15) as c:

        # Pre-flight: make sure server is up
        try:
            r = await c.get("/health")
            if r.status_code != 200:
                print(f"\n  Server returned {r.status_code} on /health -- is it running?")
                sys.exit(2)
        except httpx.ConnectError:
            print("\n  Cannot connect to server at localhost:8000 -- is it running?")
            sys.exit(2)

        await test_health(c)
        await test_hospitals(c)
        case_id = await test_case_progress(c)
        await test_case_progress_validation(c)
        if not args.no_storage:
            await test_uploads(c, case_id, args.secret)
        await test_marketing(c)
        await test_error_handling(c)
        await test_openapi(c)

    # Summary
    print(f"\n{'=' * 60}")
    print(f"  RESULTS: {PASS} passed, {FAIL} failed")
    print(f"{'=' * 60}")

    if ERRORS:
        print("\nFailures:")
        for e in ERRORS:
            print(f"  - {e}")

    sys.exit(0 if FAIL == 0 else 1)


if __name__ == "__main__":
    asyncio.run(main())
