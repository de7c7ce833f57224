"""Issue pipeline: classify, parse, collect, sort and group link records."""

from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from functools import partial

import structlog

from flg.errors import IssueBodyError
from flg.labels import classify_labels
from flg.models import ClassifiedRecord, Diagnostic, LinkGroup, PipelineResult, RawIssue
from flg.parsing import parse_issue_body
from flg.settings import GenerationSettings

logger = structlog.get_logger(__name__)


def process_issue(issue: RawIssue, generation: GenerationSettings) -> ClassifiedRecord | None:
    """Turn one issue into a classified record.

    Returns None for inactive issues without looking at the body. Raises an
    IssueBodyError subclass when the body is rejected.
    """
    decision = classify_labels(issue.labels, generation)
    if not decision.is_active:
        return None

    record = parse_issue_body(issue.body)
    order_key = issue.updated_at if generation.sort_by_updated_time else issue.created_at
    return ClassifiedRecord(
        issue_id=issue.id,
        issue_number=issue.number,
        record=record,
        is_active=decision.is_active,
        group_labels=decision.group_labels,
        order_key=order_key,
    )


def _evaluate(issue: RawIssue, generation: GenerationSettings) -> ClassifiedRecord | Diagnostic | None:
    try:
        return process_issue(issue, generation)
    except IssueBodyError as exc:
        return Diagnostic(issue_id=issue.id, issue_number=issue.number, kind=exc.kind, message=str(exc))


def sort_records(records: Iterable[ClassifiedRecord]) -> list[ClassifiedRecord]:
    """Oldest first; issue id breaks ties."""
    return sorted(records, key=lambda r: (r.order_key, r.issue_id))


def run_pipeline(
    issues: Iterable[RawIssue],
    generation: GenerationSettings,
    max_workers: int | None = None,
) -> PipelineResult:
    """Process every issue and collect accepted records plus diagnostics for rejected ones.

    With max_workers > 1 issues are parsed on a thread pool. Results are
    gathered in input order afterwards so the outcome does not depend on
    scheduling.
    """
    issues = list(issues)
    evaluate = partial(_evaluate, generation=generation)
    if max_workers and max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            outcomes = list(executor.map(evaluate, issues))
    else:
        outcomes = [evaluate(issue) for issue in issues]

    records: list[ClassifiedRecord] = []
    diagnostics: list[Diagnostic] = []
    inactive_count = 0
    for issue, outcome in zip(issues, outcomes):
        if outcome is None:
            inactive_count += 1
            logger.debug("Issue is not active, skipping", issue_id=issue.id, issue_number=issue.number)
        elif isinstance(outcome, Diagnostic):
            diagnostics.append(outcome)
            logger.warning(
                "Issue skipped",
                issue_id=outcome.issue_id,
                issue_number=outcome.issue_number,
                kind=outcome.kind,
                reason=outcome.message,
            )
        else:
            records.append(outcome)

    logger.info(
        "Processed issues",
        total=len(issues),
        accepted=len(records),
        rejected=len(diagnostics),
        inactive=inactive_count,
    )
    return PipelineResult(records=sort_records(records), diagnostics=diagnostics, inactive_count=inactive_count)


def group_records(records: Iterable[ClassifiedRecord], generation: GenerationSettings) -> list[LinkGroup]:
    """Build one group per configured group, in configuration order.

    A record shows up in every group it carries the label of. Records with no
    group go to a trailing ungrouped bucket when that is enabled, and are
    dropped otherwise.
    """
    ordered = sort_records(records)
    groups = [
        LinkGroup(
            label=group.label,
            name=group.name,
            description=group.description,
            entries=[record for record in ordered if group.label in record.group_labels],
        )
        for group in generation.groups
    ]

    ungrouped = [record for record in ordered if not record.group_labels]
    if generation.ungrouped.enabled:
        groups.append(
            LinkGroup(
                label=None,
                name=generation.ungrouped.name,
                description=generation.ungrouped.description,
                entries=ungrouped,
            )
        )
    elif ungrouped:
        logger.warning(
            "Records match no configured group and are left out",
            issue_numbers=[record.issue_number for record in ungrouped],
        )
    return groups
