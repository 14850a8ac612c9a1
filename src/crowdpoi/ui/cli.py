# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from crowdpoi import __version__
from crowdpoi.app import (
    approve_proposal,
    cast_vote,
    list_proposals,
    list_staged_reports,
    reject_proposal,
    show_proposal,
    submit_update,
)
from crowdpoi.config import ConfigurationError, configure_logging
from crowdpoi.domain.errors import ContributionError, ValidationError
from crowdpoi.domain.model import LiteralKind, lookup_field

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from crowdpoi.domain.graph_merge import StagedReport
    from crowdpoi.domain.model import FieldValue, Proposal, Vote

log = logging.getLogger(__name__)

_TRUE_WORDS = frozenset({"true", "yes", "1", "on"})
_FALSE_WORDS = frozenset({"false", "no", "0", "off"})


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Crowdsourced POI corrections")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    submit = subparsers.add_parser("submit", help="Propose a change or upvote an identical one")
    submit.add_argument("--user", required=True, help="Submitting user id")
    submit.add_argument("--target", required=True, help="Local name of the POI to change")
    submit.add_argument(
        "--field",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Proposed field value; repeat for several fields",
    )
    submit.add_argument(
        "--fields-json",
        type=str,
        help="JSON object of proposed fields (merged with --field, which wins)",
    )
    submit.add_argument("--ip", type=str, help="Client IP to record with the vote")

    vote = subparsers.add_parser("vote", help="Vote on a pending proposal")
    vote.add_argument("proposal_id", help="Proposal UUID")
    vote.add_argument("--user", required=True, help="Voting user id")
    vote.add_argument("--type", dest="vote_type", default="up", choices=("up", "down"))
    vote.add_argument("--comment", type=str, help="Optional comment")
    vote.add_argument("--ip", type=str, help="Client IP to record with the vote")

    listing = subparsers.add_parser("list", help="List proposals, newest first")
    listing.add_argument("--target", type=str, help="Only proposals for this POI")
    listing.add_argument(
        "--status",
        type=str,
        choices=("pending", "approved", "rejected"),
        help="Status filter (default: pending)",
    )
    listing.add_argument("--page", type=int, default=1, help="1-based page number")
    listing.add_argument("--limit", type=int, help="Page size (defaults to config)")

    show = subparsers.add_parser("show", help="Show a proposal and its votes")
    show.add_argument("proposal_id", help="Proposal UUID")

    approve = subparsers.add_parser("approve", help="Approve and merge a pending proposal")
    approve.add_argument("proposal_id", help="Proposal UUID")

    reject = subparsers.add_parser("reject", help="Reject a pending proposal")
    reject.add_argument("proposal_id", help="Proposal UUID")

    staged = subparsers.add_parser("staged", help="List pending reports in the staging graph")
    staged.add_argument("--target", type=str, help="Only reports for this POI")

    return parser.parse_args(list(argv))


def _coerce_field(name: str, raw: str) -> FieldValue:
    spec = lookup_field(name)
    if spec is None:
        return raw
    if spec.kind is LiteralKind.BOOLEAN:
        lowered = raw.strip().lower()
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
        raise ValueError(f"Field {name} expects a boolean, got {raw!r}")
    if spec.kind is LiteralKind.INTEGER:
        try:
            return int(raw)
        except ValueError as exc:
            raise ValueError(f"Field {name} expects an integer, got {raw!r}") from exc
    return raw


def _collect_fields(args: argparse.Namespace) -> dict[str, FieldValue | None]:
    fields: dict[str, FieldValue | None] = {}
    if args.fields_json:
        try:
            loaded = json.loads(args.fields_json)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid --fields-json: {exc}") from exc
        if not isinstance(loaded, dict):
            raise ValueError("--fields-json must be a JSON object")
        fields.update(loaded)
    for item in args.field:
        name, separator, raw = item.partition("=")
        if not separator or not name:
            raise ValueError(f"Invalid --field {item!r}; expected NAME=VALUE")
        fields[name] = _coerce_field(name, raw)
    if not fields:
        raise ValueError("Provide at least one --field or --fields-json")
    return fields


def _proposal_payload(proposal: Proposal) -> dict[str, object]:
    return {
        "id": str(proposal.id),
        "targetId": proposal.target_id,
        "proposerUserId": proposal.proposer_user_id,
        "fields": proposal.proposed_fields,
        "reportReference": proposal.report_reference,
        "status": proposal.status.value,
        "upvotes": proposal.upvotes,
        "downvotes": proposal.downvotes,
        "threshold": proposal.threshold,
        "autoMerged": proposal.auto_merged,
        "createdAt": proposal.created_at.isoformat(),
        "approvedAt": proposal.approved_at.isoformat() if proposal.approved_at else None,
        "rejectedAt": proposal.rejected_at.isoformat() if proposal.rejected_at else None,
    }


def _vote_payload(vote: Vote) -> dict[str, object]:
    return {
        "userId": vote.user_id,
        "voteType": vote.vote_type.value,
        "comment": vote.comment,
        "createdAt": vote.created_at.isoformat(),
    }


def _staged_payload(report: StagedReport) -> dict[str, object]:
    return {
        "report": report.report,
        "target": report.target,
        "userId": report.user_id,
        "reportedAt": report.reported_at.isoformat() if report.reported_at else None,
        "status": report.status,
    }


def _emit(payload: object) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _dispatch(args: argparse.Namespace) -> object:
    match args.command:
        case "submit":
            return submit_update(
                user_id=args.user,
                target_id=args.target,
                fields=_collect_fields(args),
                client_ip=args.ip,
            ).to_dict()
        case "vote":
            return cast_vote(
                user_id=args.user,
                proposal_id=args.proposal_id,
                vote_type=args.vote_type,
                comment=args.comment,
                client_ip=args.ip,
            ).to_dict()
        case "list":
            page = list_proposals(
                target_id=args.target,
                status=args.status,
                page=args.page,
                limit=args.limit,
            )
            return {
                "items": [_proposal_payload(item) for item in page.items],
                "totalCount": page.total_count,
                "page": page.page,
                "limit": page.limit,
            }
        case "show":
            proposal, votes = show_proposal(proposal_id=args.proposal_id)
            return {**_proposal_payload(proposal), "votes": [_vote_payload(v) for v in votes]}
        case "approve":
            return approve_proposal(proposal_id=args.proposal_id).to_dict()
        case "reject":
            return reject_proposal(proposal_id=args.proposal_id).to_dict()
        case "staged":
            reports = list_staged_reports(target_id=args.target)
            return [_staged_payload(report) for report in reports]
        case _:
            raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        _emit(_dispatch(parsed_args))
    except (ValueError, ValidationError) as exc:
        log.error("Invalid request: %s", exc)  # noqa: TRY400
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)
    except (ContributionError, ConfigurationError) as exc:
        log.error("Request failed: %s", exc)  # noqa: TRY400
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
