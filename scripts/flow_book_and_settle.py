#!/usr/bin/env python3
"""
Booking-to-settlement flow script.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Usage:
    python scripts/flow_book_and_settle.py --property-id <UUID> --guest-id <UUID> \
        --host-id <UUID> --admin-id <UUID> --check-in 2026-11-01 --check-out 2026-11-04

Flow:
    1. Quote the stay as the guest
    2. Create the booking
    3. Record the payment (admin)
    4. Confirm the booking (host)
    5. Aggregate the month's commission (admin)
    6. Settle the host's dues (host)
    7. Read the host account
"""

import argparse
import json
import sys
from datetime import date
from uuid import UUID, uuid4

import httpx

from akwanda.core.security import create_access_token

BASE_URL = "http://localhost:8000"


def token_for(user_id: UUID, role: str) -> str:
    return create_access_token({"sub": str(user_id), "role": role})


def api_request(
    token: str,
    method: str,
    endpoint: str,
    data: dict | None = None,
    headers: dict | None = None,
) -> dict:
    """Make authenticated API request."""
    request_headers = {"Authorization": f"Bearer {token}", **(headers or {})}
    response = httpx.request(
        method,
        f"{BASE_URL}{endpoint}",
        headers=request_headers,
        json=data,
        timeout=10.0,
        follow_redirects=True,
    )
    return {"status": response.status_code, "data": response.json() if response.text else {}}


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def print_result(result: dict, fields: list[str] | None = None) -> bool:
    """Print result, optionally filtering fields."""
    if result["status"] >= 400:
        print(f"ERROR ({result['status']}): {json.dumps(result['data'], indent=2)}")
        return False

    print(f"Status: {result['status']}")
    data = result["data"]
    if fields and isinstance(data, dict):
        data = {k: data.get(k) for k in fields if k in data}
    print(json.dumps(data, indent=2))
    return True


def main():
    parser = argparse.ArgumentParser(description="Booking to dues settlement flow")
    parser.add_argument("--property-id", required=True, type=UUID)
    parser.add_argument("--guest-id", required=True, type=UUID)
    parser.add_argument("--host-id", required=True, type=UUID)
    parser.add_argument("--admin-id", required=True, type=UUID)
    parser.add_argument("--check-in", required=True, help="Check-in date (YYYY-MM-DD)")
    parser.add_argument("--check-out", required=True, help="Check-out date (YYYY-MM-DD)")
    parser.add_argument("--adults", type=int, default=2)
    parser.add_argument("--settle-amount", type=int, help="Defaults to the booking commission")
    args = parser.parse_args()

    guest_token = token_for(args.guest_id, "guest")
    host_token = token_for(args.host_id, "host")
    admin_token = token_for(args.admin_id, "admin")
    stay = {
        "property_id": str(args.property_id),
        "check_in": args.check_in,
        "check_out": args.check_out,
        "adults": args.adults,
    }

    print_step(1, "Quote stay")
    quote = api_request(guest_token, "POST", "/api/v1/bookings/quote", stay)
    if not print_result(quote):
        sys.exit(1)
    if not quote["data"]["available"]:
        print("Dates are not available")
        sys.exit(1)

    print_step(2, "Create booking")
    created = api_request(guest_token, "POST", "/api/v1/bookings", stay)
    if not print_result(created, ["id", "confirmation_code", "status", "total_amount", "commission_amount"]):
        sys.exit(1)
    booking = created["data"]

    print_step(3, "Record payment")
    paid = api_request(admin_token, "POST", "/api/v1/payments/confirmed", {
        "booking_id": booking["id"],
        "amount_paid": booking["total_amount"],
        "method": "mobile_money",
    })
    if not print_result(paid, ["status", "payment_status", "amount_paid"]):
        sys.exit(1)

    print_step(4, "Confirm booking")
    confirmed = api_request(host_token, "POST", f"/api/v1/bookings/{booking['id']}/confirm")
    if not print_result(confirmed, ["status", "confirmed_at"]):
        sys.exit(1)

    print_step(5, "Aggregate commission")
    aggregated = api_request(admin_token, "POST", "/api/v1/admin/aggregation", {
        "period": date.fromisoformat(args.check_in).isoformat(),
    })
    if not print_result(aggregated):
        sys.exit(1)

    print_step(6, "Settle dues")
    settled = api_request(
        host_token,
        "POST",
        "/api/v1/dues/settle",
        {
            "host_id": str(args.host_id),
            "amount": args.settle_amount or booking["commission_amount"],
        },
        headers={"Idempotency-Key": str(uuid4())},
    )
    if not print_result(settled):
        sys.exit(1)

    print_step(7, "Host account")
    account = api_request(host_token, "GET", f"/api/v1/hosts/{args.host_id}/account")
    print_result(account, ["access_state", "total_fines_due", "unpaid_commission"])


if __name__ == "__main__":
    main()
