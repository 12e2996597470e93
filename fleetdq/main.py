import argparse
import json
import logging
from dataclasses import asdict
from datetime import datetime, timedelta, timezone

from engine import QualityEngine, QualitySnapshot
from fault_injection import DATA_TYPES, INTERVAL_HOURS, build_timestamps
from issue_profiles import ISSUE_KPIS
from settings import load_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def _split(value: str | None) -> list[str] | None:
    if value is None:
        return None
    return [part.strip() for part in value.split(",") if part.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run one fleet data quality assessment cycle")
    parser.add_argument("--days", type=int, default=7, help="Length of the date range ending today")
    parser.add_argument("--vessels", help="Comma-separated vessel ids (default: whole fleet)")
    parser.add_argument("--kpis", help="Comma-separated KPI ids (default: %s)" % ",".join(ISSUE_KPIS))
    parser.add_argument("--data-type", choices=DATA_TYPES, default="LF")
    parser.add_argument("--interval", choices=sorted(INTERVAL_HOURS), default="daily")
    parser.add_argument("--seed", type=int, help="RNG seed (overrides FLEETDQ_SEED)")
    parser.add_argument("--threshold", type=float, help="Alert threshold 0-100 (overrides FLEETDQ_ALERT_THRESHOLD)")
    parser.add_argument("--json", action="store_true", help="Print the summary as JSON")
    return parser


def summarize(snapshot: QualitySnapshot, show_minor_issues: bool = False) -> dict:
    vessels = []
    for profile in snapshot.profiles.values():
        issues = [
            issue.message
            for issue in profile.issues
            if show_minor_issues or issue.severity != "low"
        ]
        vessels.append(
            {
                "id": profile.vessel_id,
                "name": profile.vessel_name,
                "completeness": round(profile.completeness, 1),
                "correctness": round(profile.correctness, 1),
                "overall_score": profile.overall_score,
                "grade": profile.grade,
                "issues": issues,
            }
        )
    return {
        "timestamp": snapshot.timestamp.isoformat(),
        "fleet": snapshot.fleet.to_dict(),
        "coverage": asdict(snapshot.coverage),
        "records": {
            "count": snapshot.metrics.record_count,
            "completeness": round(snapshot.metrics.overall.completeness, 1),
            "correctness": round(snapshot.metrics.overall.correctness, 1),
            "grade": snapshot.metrics.overall.grade,
            "issue_types": snapshot.metrics.issue_types,
        },
        "trend": asdict(snapshot.trend),
        "vessels": vessels,
        "alerts": [alert.to_dict() for alert in snapshot.alerts],
    }


def print_summary(summary: dict) -> None:
    fleet = summary["fleet"]
    print(
        f"Fleet health {fleet['overall_health']} "
        f"(completeness {fleet['avg_completeness']}%, correctness {fleet['avg_correctness']}%)"
    )
    print(
        f"Vessels: {fleet['healthy_vessels']} healthy, {fleet['average_vessels']} average, "
        f"{fleet['poor_vessels']} poor of {fleet['total_vessels']}"
    )
    coverage = summary["coverage"]
    print(f"Data points: {coverage['data_points']} (~{coverage['estimated_missing_points']} missing)")
    records = summary["records"]
    print(
        f"Records: {records['count']}, completeness {records['completeness']}%, "
        f"correctness {records['correctness']}% [{records['grade']}]"
    )
    for vessel in summary["vessels"]:
        print(
            f"  {vessel['name']:<20} {vessel['overall_score']:>3}  {vessel['grade']:<10} "
            f"{'; '.join(vessel['issues'])}"
        )
    for alert in summary["alerts"]:
        print(f"[{alert['severity'].upper()}] {alert['title']}: {alert['message']}")


def main(argv: list[str] | None = None) -> dict:
    args = build_parser().parse_args(argv)

    settings = load_settings()
    if args.threshold is not None:
        settings = settings.with_updates(alert_threshold=args.threshold)

    engine = QualityEngine(settings=settings, seed=args.seed)
    end = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    start = end - timedelta(days=max(0, args.days - 1))
    timestamps = build_timestamps(start, end, args.interval)

    logger.info("Assessing %d timestamps (%s, %s)", len(timestamps), args.data_type, args.interval)
    snapshot = engine.refresh(
        timestamps,
        vessel_ids=_split(args.vessels),
        kpi_ids=_split(args.kpis) or list(ISSUE_KPIS),
        data_type=args.data_type,
    )

    summary = summarize(snapshot, settings.show_minor_issues)
    if args.json:
        print(json.dumps(summary, indent=2, default=str))
    else:
        print_summary(summary)
    return summary


if __name__ == "__main__":
    main()
