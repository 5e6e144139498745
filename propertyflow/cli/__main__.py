# propertyflow/cli/__main__.py
from __future__ import annotations

import argparse
from datetime import date

from ..db import SessionLocal
from ..logging_config import configure_logging
from ..services.daily import run_daily
from .seed_demo import seed_demo


def _seed(args: argparse.Namespace) -> None:
    out = seed_demo(
        landlord_slug=args.landlord_slug,
        landlord_name=args.landlord_name,
        user_email=args.user_email,
        password=args.password,
        state=args.state,
        create_sample_property=(not args.no_sample_property),
        create_contractor=(not args.no_contractor),
    )
    print(
        {
            "ok": True,
            "landlord_slug": out.landlord_slug,
            "user_email": out.user_email,
            "sample_property_id": out.property_id,
            "unit_ids": out.unit_ids,
            "template_id": out.template_id,
            "contractor_id": out.contractor_id,
        }
    )


def _run_daily(args: argparse.Namespace) -> None:
    today = date.fromisoformat(args.date) if args.date else None
    db = SessionLocal()
    try:
        results = run_daily(db, today=today)
    finally:
        db.close()
    for r in results:
        print(r)


def main() -> None:
    configure_logging()

    p = argparse.ArgumentParser(prog="propertyflow")
    sub = p.add_subparsers(dest="command", required=True)

    seed = sub.add_parser("seed-demo", help="create a demo landlord, property, units and default template")
    seed.add_argument("--landlord-slug", default="demo")
    seed.add_argument("--landlord-name", default="Demo Properties")
    seed.add_argument("--user-email", default="owner@demo.local")
    seed.add_argument("--password", default="demo-password")
    seed.add_argument("--state", default="NV")
    seed.add_argument("--no-sample-property", action="store_true")
    seed.add_argument("--no-contractor", action="store_true")
    seed.set_defaults(func=_seed)

    daily = sub.add_parser("run-daily", help="run the daily rent/lease/signing automation once")
    daily.add_argument("--date", default=None, help="ISO date to run as (defaults to today)")
    daily.set_defaults(func=_run_daily)

    args = p.parse_args()
    args.func(args)


if __name__ == "__main__":
    main()
