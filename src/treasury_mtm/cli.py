from __future__ import annotations

import argparse
import datetime as _dt
import logging

from treasury_mtm import __version__
from treasury_mtm.config.loader import load_request
from treasury_mtm.curves.implied_rates import compare_implied_curves, implied_curve_as_of
from treasury_mtm.valuation.export import (
    curve_comparison_frame,
    implied_curve_frame,
    snapshot_frames,
)
from treasury_mtm.valuation.snapshot import PortfolioSnapshotAggregator, parse_as_of


def _date_arg(value: str) -> _dt.date:
    parsed = parse_as_of(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"Invalid date: {value!r} (expected YYYY-MM-DD)")
    return parsed


def _print_totals(label: str, quote, base) -> None:
    print(f"{label:<28} quote {float(quote):>20,.2f}   base {float(base):>16,.2f}")


# ============================================================
# Command: snapshot
# ============================================================


def cmd_snapshot(args):
    request = load_request(args.input)
    as_of = args.as_of or request.as_of or _dt.date.today()
    aggregator = PortfolioSnapshotAggregator(request.settings)

    print(f"[tmtm] Valuing '{request.name}' as of {as_of}")
    snap = aggregator.snapshot(
        as_of,
        request.filtered_positions(),
        request.forward_curves,
        request.spot_rates,
        request.custom_fields,
    )

    if snap.spot_rate_used is None:
        print("[tmtm] No spot rate on or before this date; portfolio cannot be valued.")
        return

    print(f"Spot used: {snap.spot_rate_used}")
    frames = snapshot_frames(snap, request.custom_fields)
    for name in ("realized", "latent"):
        print(f"\n---------- {name.capitalize()} ----------")
        df = frames[name]
        print(df.to_string(index=False) if not df.empty else "(none)")

    if snap.unpriced:
        print("\n---------- Not priced ----------")
        for gap in snap.unpriced:
            print(f"  {gap.position.id:<16} {gap.state.value:<9} {gap.reason.value}")

    print()
    _print_totals("Realized", snap.realized_totals.quote, snap.realized_totals.base)
    _print_totals("Latent", snap.latent_totals.quote, snap.latent_totals.base)
    _print_totals("Total", snap.totals.quote, snap.totals.base)


# ============================================================
# Command: period
# ============================================================


def cmd_period(args):
    request = load_request(args.input)
    start = args.start or request.period_start
    end = args.end or request.period_end or _dt.date.today()
    if start is None:
        raise ValueError("Period start is required (--start or period_start in the input).")

    aggregator = PortfolioSnapshotAggregator(request.settings)
    result = aggregator.period(
        start,
        end,
        request.filtered_positions(),
        request.forward_curves,
        request.spot_rates,
        request.custom_fields,
    )

    print(f"[tmtm] Period {result.start} .. {result.end}")
    opening = result.start_snapshot
    closing = result.end_snapshot
    _print_totals(f"Cumulative at {result.start - _dt.timedelta(days=1)}", opening.totals.quote, opening.totals.base)
    _print_totals(f"Cumulative at {result.end}", closing.totals.quote, closing.totals.base)
    _print_totals("Period result", result.pnl.quote, result.pnl.base)


# ============================================================
# Command: curve
# ============================================================


def cmd_curve(args):
    request = load_request(args.input)
    as_of = args.as_of or request.as_of or _dt.date.today()
    days_in_year = request.settings.days_in_year

    view = implied_curve_as_of(request.spot_rates, request.forward_curves, as_of, days_in_year)
    if view is None:
        print(f"[tmtm] No spot rate or curve on or before {as_of}.")
        return

    print(f"[tmtm] Curve observed {view.observed_on}, spot {view.spot_rate} (as of {as_of})")

    if args.compare is None:
        print(implied_curve_frame(view.points).to_string(index=False))
        return

    other = implied_curve_as_of(request.spot_rates, request.forward_curves, args.compare, days_in_year)
    rows = compare_implied_curves(view.points, other.points if other else None)
    print(curve_comparison_frame(rows).to_string(index=False))


# ============================================================
# Command: series
# ============================================================


def cmd_series(args):
    request = load_request(args.input)
    aggregator = PortfolioSnapshotAggregator(request.settings)
    df = aggregator.valuation_series(
        args.start,
        args.end,
        request.filtered_positions(),
        request.forward_curves,
        request.spot_rates,
    )
    print(df.to_string())


# ============================================================
# Command: version
# ============================================================


def cmd_version(args):
    print(__version__)


# ============================================================
# Main CLI
# ============================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tmtm", description="FX hedge mark-to-market")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    # ------------------------------------------------------------------
    # snapshot
    # ------------------------------------------------------------------
    p_snap = sub.add_parser("snapshot", help="Realized/latent P&L on a date")
    p_snap.add_argument("--input", required=True, help="Path to request JSON/YAML")
    p_snap.add_argument("--as-of", type=_date_arg, default=None)
    p_snap.set_defaults(func=cmd_snapshot)

    # ------------------------------------------------------------------
    # period
    # ------------------------------------------------------------------
    p_per = sub.add_parser("period", help="P&L generated between two dates")
    p_per.add_argument("--input", required=True, help="Path to request JSON/YAML")
    p_per.add_argument("--start", type=_date_arg, default=None)
    p_per.add_argument("--end", type=_date_arg, default=None)
    p_per.set_defaults(func=cmd_period)

    # ------------------------------------------------------------------
    # curve
    # ------------------------------------------------------------------
    p_curve = sub.add_parser("curve", help="Implied annual rates of the forward curve")
    p_curve.add_argument("--input", required=True, help="Path to request JSON/YAML")
    p_curve.add_argument("--as-of", type=_date_arg, default=None)
    p_curve.add_argument("--compare", type=_date_arg, default=None, help="Comparison date")
    p_curve.set_defaults(func=cmd_curve)

    # ------------------------------------------------------------------
    # series
    # ------------------------------------------------------------------
    p_ser = sub.add_parser("series", help="Daily totals over a date range")
    p_ser.add_argument("--input", required=True, help="Path to request JSON/YAML")
    p_ser.add_argument("--start", type=_date_arg, required=True)
    p_ser.add_argument("--end", type=_date_arg, required=True)
    p_ser.set_defaults(func=cmd_series)

    # ------------------------------------------------------------------
    # version
    # ------------------------------------------------------------------
    p_ver = sub.add_parser("version", help="Show version")
    p_ver.set_defaults(func=cmd_version)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args.func(args)


if __name__ == "__main__":
    main()
