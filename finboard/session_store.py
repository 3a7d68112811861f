"""JSON session persistence for finished deliberations."""

import json
import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

from finboard.models import (
    BoardDeliberation,
    CritiqueOutput,
    DeliberationResult,
    PurchaseRequest,
    ReasoningOutput,
    ResearchOutput,
    Vote,
    VotingResult,
)

logger = logging.getLogger(__name__)


@dataclass
class Session:
    id: str
    created_at: datetime
    updated_at: datetime
    name: str | None = None
    deliberations: list[BoardDeliberation] = field(default_factory=list)
    active_personas: list[str] = field(default_factory=list)


@dataclass
class SessionSummary:
    id: str
    name: str | None
    created_at: datetime
    deliberation_count: int
    total_approved: int
    total_rejected: int
    total_spent_approved: Decimal
    total_no_verdict: int = 0   # every member dropped out, nothing was decided


def _json_default(value: object) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _purchase_from_dict(data: dict) -> PurchaseRequest:
    return PurchaseRequest(
        id=data["id"],
        item=data["item"],
        price=Decimal(data["price"]),
        currency=data["currency"],
        category=data["category"],
        urgency=data["urgency"],
        created_at=datetime.fromisoformat(data["created_at"]),
        description=data.get("description"),
        url=data.get("url"),
        context=data.get("context"),
    )


def _member_result_from_dict(data: dict) -> DeliberationResult:
    return DeliberationResult(
        member_id=data["member_id"],
        member_name=data["member_name"],
        research=ResearchOutput(**data["research"]),
        reasoning=ReasoningOutput(**data["reasoning"]),
        critique=CritiqueOutput(**data["critique"]),
        final_vote=Vote(**data["final_vote"]),
        processing_time_sec=data["processing_time_sec"],
    )


def deliberation_from_dict(data: dict) -> BoardDeliberation:
    voting_raw = dict(data["voting_result"])
    voting_raw["votes"] = [Vote(**v) for v in voting_raw.get("votes", [])]
    return BoardDeliberation(
        id=data["id"],
        purchase=_purchase_from_dict(data["purchase"]),
        member_results=[_member_result_from_dict(r) for r in data["member_results"]],
        voting_result=VotingResult(**voting_raw),
        started_at=datetime.fromisoformat(data["started_at"]),
        completed_at=datetime.fromisoformat(data["completed_at"]),
        total_duration_sec=data["total_duration_sec"],
    )


def _session_from_dict(data: dict) -> Session:
    return Session(
        id=data["id"],
        name=data.get("name"),
        created_at=datetime.fromisoformat(data["created_at"]),
        updated_at=datetime.fromisoformat(data["updated_at"]),
        deliberations=[deliberation_from_dict(d) for d in data.get("deliberations", [])],
        active_personas=list(data.get("active_personas", [])),
    )


def split_by_verdict(
    deliberations: list[BoardDeliberation],
) -> tuple[list[BoardDeliberation], list[BoardDeliberation], list[BoardDeliberation]]:
    """Partition into (approved, rejected, no verdict). Zero-vote runs count as neither."""
    approved: list[BoardDeliberation] = []
    rejected: list[BoardDeliberation] = []
    undecided: list[BoardDeliberation] = []
    for d in deliberations:
        if not d.voting_result.has_votes:
            undecided.append(d)
        elif d.voting_result.final_decision == "approve":
            approved.append(d)
        else:
            rejected.append(d)
    return approved, rejected, undecided


def summarize_session(session: Session) -> SessionSummary:
    approved, rejected, undecided = split_by_verdict(session.deliberations)
    return SessionSummary(
        id=session.id,
        name=session.name,
        created_at=session.created_at,
        deliberation_count=len(session.deliberations),
        total_approved=len(approved),
        total_rejected=len(rejected),
        total_spent_approved=sum((d.purchase.price for d in approved), Decimal("0")),
        total_no_verdict=len(undecided),
    )


class SessionStore:
    """One JSON file per session under <data_dir>/sessions."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = data_dir
        self.sessions_dir = data_dir / "sessions"
        self.sessions_dir.mkdir(parents=True, exist_ok=True)
        self.current: Session | None = None

    def _path(self, session_id: str) -> Path:
        return self.sessions_dir / f"{session_id}.json"

    def create_session(self, name: str | None = None, active_personas: list[str] | None = None) -> Session:
        now = datetime.now(timezone.utc)
        session = Session(
            id=str(uuid.uuid4()),
            name=name,
            created_at=now,
            updated_at=now,
            active_personas=list(active_personas or []),
        )
        self.current = session
        self.save_session(session)
        return session

    def load_session(self, session_id: str) -> Session | None:
        path = self._path(session_id)
        if not path.exists():
            return None
        try:
            session = _session_from_dict(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Could not read session %s: %s", session_id, exc)
            return None
        self.current = session
        return session

    def save_session(self, session: Session) -> Path:
        session.updated_at = datetime.now(timezone.utc)
        path = self._path(session.id)
        path.write_text(json.dumps(asdict(session), default=_json_default, indent=2), encoding="utf-8")
        logger.debug("Session saved to: %s", path)
        return path

    def add_deliberation(self, deliberation: BoardDeliberation) -> Session:
        if self.current is None:
            self.create_session()
        self.current.deliberations.append(deliberation)
        self.save_session(self.current)
        return self.current

    def get_or_create_session(self, active_personas: list[str]) -> Session:
        """Reuse the current or most recent session, else start a new one."""
        if self.current is not None:
            return self.current
        summaries = self.list_sessions()
        if summaries:
            loaded = self.load_session(summaries[0].id)
            if loaded is not None:
                return loaded
        return self.create_session(active_personas=active_personas)

    def list_sessions(self) -> list[SessionSummary]:
        """Summaries of every readable session, newest first."""
        summaries: list[SessionSummary] = []
        for path in self.sessions_dir.glob("*.json"):
            try:
                session = _session_from_dict(json.loads(path.read_text(encoding="utf-8")))
            except (OSError, ValueError, KeyError, TypeError) as exc:
                logger.warning("Skipping unreadable session file %s: %s", path.name, exc)
                continue
            summaries.append(summarize_session(session))
        return sorted(summaries, key=lambda s: s.created_at, reverse=True)

    def history(self, session_id: str | None = None) -> list[BoardDeliberation]:
        if session_id:
            session = self.load_session(session_id)
            return session.deliberations if session else []
        if self.current is not None:
            return self.current.deliberations
        return []
