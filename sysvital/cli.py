"""Entry point for the sysvital command line tool."""
import argparse
import asyncio
from typing import List, Optional

from sysvital.agent.engine import AnalysisCancelled, SystemAnalyzer
from sysvital.core.config import Config
from sysvital.core.models import OptimizationPlan, OptimizationResult, SystemAnalysisReport
from sysvital.utils.formatting import format_bytes, render_table
from sysvital.utils.logger import Logger
from sysvital.utils.pdf_generator import generate_pdf


def format_report(report: SystemAnalysisReport) -> str:
    lines = [
        f"System health: {report.overall_health_score}/100",
        report.summary,
        "",
        render_table(
            ["Domain", "Score", "Issues"],
            [[name.capitalize(), str(d.health_score), "; ".join(d.issues) or "-"]
             for name, d in report.domains.items()],
        ),
    ]
    if report.recommendations:
        lines.extend(["", "Recommendations:"])
        lines.append(render_table(
            ["Priority", "Title", "Action"],
            [[r.priority.name, r.title, r.action_required] for r in report.recommendations],
        ))
    if report.insights:
        lines.extend(["", report.insights])
    return "\n".join(lines)


def format_plan(plan: OptimizationPlan) -> str:
    if not plan.steps:
        return "Nothing to optimize."
    rows = [
        [str(i), s.type.value, s.title, "yes" if s.requires_confirmation else "no"]
        for i, s in enumerate(plan.steps, start=1)
    ]
    lines = [
        render_table(["#", "Type", "Step", "Confirm"], rows),
        "",
        f"Expected improvement: +{plan.expected_health_score_increase} points",
        f"Space savings: {format_bytes(plan.estimated_space_saving_bytes)}",
        f"Boot time savings: {plan.estimated_time_saving_ms / 1000:.1f}s",
    ]
    if plan.rationale:
        lines.extend(["", plan.rationale])
    return "\n".join(lines)


def format_result(result: OptimizationResult) -> str:
    status = "cancelled" if result.cancelled else ("completed" if result.success else "completed with errors")
    lines = [
        f"Optimization {status}: {result.steps_completed} completed, {result.steps_failed} failed "
        f"in {result.duration.total_seconds():.1f}s",
        f"Health change: {result.actual_health_score_increase:+d} points",
    ]
    lines.extend(f"  - {e}" for e in result.errors)
    if result.post_narrative:
        lines.extend(["", result.post_narrative])
    return "\n".join(lines)


async def cmd_scan(analyzer: SystemAnalyzer, pdf: Optional[str]) -> int:
    report = await analyzer.analyze_system()
    print(format_report(report))
    if pdf:
        ok, out = generate_pdf(report, pdf)
        print(f"\nPDF report: {out}" if ok else f"\nPDF export failed: {out}")
        return 0 if ok else 1
    return 0


async def cmd_plan(analyzer: SystemAnalyzer) -> int:
    print(format_plan(await analyzer.generate_plan()))
    return 0


async def cmd_optimize(analyzer: SystemAnalyzer, assume_yes: bool) -> int:
    plan = await analyzer.generate_plan()
    print(format_plan(plan))
    if not plan.steps:
        return 0

    if not assume_yes:
        answer = input("\nApply this plan? [y/N] ").strip().lower()
        if answer not in ("y", "yes"):
            print("Aborted.")
            return 0

    result = await analyzer.execute_plan(plan)
    print()
    print(format_result(result))
    return 0 if result.success else 1


async def cmd_explain(analyzer: SystemAnalyzer) -> int:
    print(await analyzer.explain_status())
    return 0


async def cmd_ask(analyzer: SystemAnalyzer, question: str) -> int:
    print(await analyzer.ask_question(question))
    return 0


def format_history(scores: List[tuple], events: List[tuple]) -> str:
    if not scores and not events:
        return "No history recorded yet."
    lines = []
    if scores:
        lines.append(render_table(
            ["Timestamp", "Overall", "Hardware", "Software", "Performance", "Security"],
            [[str(v) for v in row] for row in scores],
        ))
    if events:
        if lines:
            lines.append("")
        lines.append(render_table(
            ["Timestamp", "Type", "Severity", "Message"],
            [[str(v) for v in row] for row in events],
        ))
    return "\n".join(lines)


async def cmd_history(analyzer: SystemAnalyzer, limit: int) -> int:
    if analyzer.db is None:
        print("Event log disabled (--no-db).")
        return 1
    print(format_history(analyzer.db.get_score_history(limit), analyzer.db.get_recent_events(limit)))
    return 0


async def cmd_export(analyzer: SystemAnalyzer, filename: str) -> int:
    if analyzer.db is None:
        print("Event log disabled (--no-db).")
        return 1
    ok, msg = analyzer.db.export_events_to_csv(filename)
    print(msg if ok else f"Export failed: {msg}")
    return 0 if ok else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sysvital", description="System health analysis and optimization.")
    parser.add_argument("--config", default="config.yaml", help="Path to the YAML configuration file")
    parser.add_argument("--no-db", action="store_true", help="Do not record results in the event log")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    scan_parser = sub.add_parser("scan", help="Analyze the system and print the health report")
    scan_parser.add_argument("--pdf", metavar="FILE", help="Also export the report to a PDF file")

    sub.add_parser("plan", help="Build and print an optimization plan")

    optimize_parser = sub.add_parser("optimize", help="Build and execute an optimization plan")
    optimize_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    sub.add_parser("explain", help="Explain the current system status")

    ask_parser = sub.add_parser("ask", help="Ask a question about this system")
    ask_parser.add_argument("question")

    history_parser = sub.add_parser("history", help="Show recorded health scores and optimization events")
    history_parser.add_argument("-n", "--limit", type=int, default=20, help="Rows to show per table")

    export_parser = sub.add_parser("export", help="Export the optimization event log to CSV")
    export_parser.add_argument("filename", nargs="?", default="sysvital_events.csv")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = Config(args.config)
    Logger().configure("INFO" if args.verbose else config.log_level, config.log_file or None)
    analyzer = SystemAnalyzer.from_config(config, use_db=not args.no_db)

    if args.command == "scan":
        coro = cmd_scan(analyzer, args.pdf)
    elif args.command == "plan":
        coro = cmd_plan(analyzer)
    elif args.command == "optimize":
        coro = cmd_optimize(analyzer, args.yes)
    elif args.command == "explain":
        coro = cmd_explain(analyzer)
    elif args.command == "ask":
        coro = cmd_ask(analyzer, args.question)
    elif args.command == "history":
        coro = cmd_history(analyzer, args.limit)
    elif args.command == "export":
        coro = cmd_export(analyzer, args.filename)
    else:
        raise SystemExit(2)

    try:
        return asyncio.run(coro)
    except (KeyboardInterrupt, AnalysisCancelled):
        print("\nStopped by user.")
        return 130
    finally:
        if analyzer.db is not None:
            analyzer.db.close()


if __name__ == "__main__":
    raise SystemExit(main())
