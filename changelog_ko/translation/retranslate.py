"""
Retranslation sweep over already-translated entries.

Finds entries that are empty, untouched or have no Korean at all and sends
only those back through the orchestrator, with the looser 10% quality
threshold.
"""

import copy
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from changelog_ko.core.models import RunContext
from changelog_ko.translation.orchestrator import TranslationOrchestrator
from changelog_ko.translation.quality import RETRANSLATE_THRESHOLD, needs_retranslation
from changelog_ko.utils.debug_log import EventType
from changelog_ko.utils.logger import get_logger

logger = get_logger(__name__)

# {group_id: [{"original": ..., "translated": ...}, ...]}
EntryGroups = Dict[str, List[Dict[str, Optional[str]]]]


@dataclass
class PoorEntry:
    group_id: str
    index: int
    reason: str
    original: str


@dataclass
class RetranslateReport:
    found: List[PoorEntry] = field(default_factory=list)
    retranslated_count: int = 0
    still_poor: List[PoorEntry] = field(default_factory=list)
    dry_run: bool = False

    @property
    def found_count(self) -> int:
        return len(self.found)

    def to_dict(self):
        return {
            "found": self.found_count,
            "retranslated": self.retranslated_count,
            "still_poor": len(self.still_poor),
            "dry_run": self.dry_run,
        }


def find_poor_entries(groups: EntryGroups) -> List[PoorEntry]:
    """Entries whose current translation should be redone, in group order."""
    poor = []
    for group_id, entries in groups.items():
        for index, entry in enumerate(entries):
            reason = needs_retranslation(entry.get("original"), entry.get("translated"))
            if reason:
                poor.append(PoorEntry(group_id, index, reason, (entry.get("original") or "").strip()))
    return poor


def retranslate_entries(
    groups: EntryGroups,
    orchestrator: TranslationOrchestrator,
    context: Optional[RunContext] = None,
    dry_run: bool = False,
    threshold: float = RETRANSLATE_THRESHOLD
) -> RetranslateReport:
    """
    Retranslate poor entries in place.

    Args:
        groups: Entries per group; ``translated`` is updated in place
        orchestrator: Configured orchestrator; its first-pass threshold is
            replaced by ``threshold`` for this sweep
        context: Run state
        dry_run: Only report what would be retranslated

    Returns:
        RetranslateReport
    """
    context = context or RunContext()
    poor = find_poor_entries(groups)
    report = RetranslateReport(found=poor, dry_run=dry_run)

    context.debug.log_event(EventType.RETRANSLATE_START, context="sweep", poor_entry_count=len(poor))
    for entry in poor:
        logger.info(f"[{entry.group_id}] [{entry.reason}] \"{entry.original[:70]}\"")
        context.debug.log_event(
            EventType.RETRANSLATE_ENTRY,
            group_id=entry.group_id, index=entry.index, reason=entry.reason
        )

    if poor and not dry_run:
        sweep = copy.copy(orchestrator)
        sweep.quality_threshold = threshold

        pending: Dict[str, List[PoorEntry]] = {}
        for entry in poor:
            pending.setdefault(entry.group_id, []).append(entry)

        results = sweep.translate_groups(
            {group_id: [e.original for e in items] for group_id, items in pending.items()},
            context
        )

        for group_id, items in pending.items():
            for entry, translated in zip(items, results[group_id].translations):
                groups[group_id][entry.index]["translated"] = translated
                if needs_retranslation(entry.original, translated):
                    logger.warning(f"Still untranslated after retry: \"{translated[:60]}\"")
                    report.still_poor.append(entry)
                else:
                    report.retranslated_count += 1

    context.debug.log_event(
        EventType.RETRANSLATE_END,
        found_count=report.found_count,
        retranslated_count=report.retranslated_count,
        still_poor_count=len(report.still_poor),
        dry_run=dry_run,
    )
    logger.info(
        f"Retranslation: found={report.found_count}, retranslated={report.retranslated_count}, "
        f"still-poor={len(report.still_poor)}"
    )
    return report
