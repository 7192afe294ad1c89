"""
scripts/pipeline_report.py — Print lead-source analytics and the pipeline board.

Usage:
    python scripts/pipeline_report.py
    python scripts/pipeline_report.py --follow-ups   # also list due follow-ups
    python scripts/pipeline_report.py --remind       # re-send reminders for due follow-ups
"""

import sys
import os
import argparse
import logging

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("pipeline_report")

from crm.db.repository import RecordStore
from crm.db.session import get_session
from crm.services.conversion import ConversionWorkflow
from crm.services.lead_service import LeadManager
from crm.services.pipeline import PipelineTracker


def run(show_follow_ups: bool, remind: bool) -> None:
    print("\n" + "="*55)
    print("  📊  CRM — Pipeline Report")
    print("="*55)

    with get_session() as db:
        store = RecordStore(db)
        leads = LeadManager(store)

        # ── Lead sources ──────────────────────────────────────
        print("\n[1/3] 🧲 Leads by source")
        analytics = leads.source_analytics()
        if not analytics:
            print("      ⚠️  No active leads.")
        for source, stats in sorted(analytics.items()):
            print(
                f"      {source:<16} count={stats['count']:<4} qualified={stats['qualified']:<4} "
                f"avg_score={stats['avg_score']:<4} rate={stats['conversion_rate']}%"
            )

        # ── Pipeline board ────────────────────────────────────
        print("\n[2/3] 🗂️  Pipeline")
        for stage in PipelineTracker(store).stage_summary():
            print(f"      {stage.label:<12} {stage.count:>3} deal(s)  ${stage.value:>12,.2f}")

        conversions = ConversionWorkflow(store).conversion_stats()
        print(
            f"\n      Converted from leads: {conversions['total_converted']} "
            f"(${conversions['total_revenue']:,.2f}, avg ${conversions['avg_deal_size']:,})"
        )

        # ── Follow-ups ────────────────────────────────────────
        if show_follow_ups or remind:
            print("\n[3/3] ⏰ Due follow-ups")
            due = leads.due_follow_ups()
            if not due:
                print("      ✅ Nothing due.")
            for lead in due:
                print(f"      #{lead.id:<5} {lead.full_name or '<unnamed>':<24} {lead.next_follow_up:%Y-%m-%d %H:%M}")
                if remind:
                    leads.notifier.follow_up_reminder(lead.id, lead.next_follow_up, user_id=lead.assigned_to_id)
            if remind and due:
                logger.info("Sent %d follow-up reminder(s).", len(due))

    print("\n" + "="*55 + "\n")


def main():
    parser = argparse.ArgumentParser(description="Print the lead and pipeline report.")
    parser.add_argument(
        "--follow-ups", action="store_true",
        help="List leads whose follow-up time has passed",
    )
    parser.add_argument(
        "--remind", action="store_true",
        help="Emit a follow-up reminder notification for every due lead",
    )
    args = parser.parse_args()
    run(show_follow_ups=args.follow_ups, remind=args.remind)


if __name__ == "__main__":
    main()
