"""
Session state for one browser tab and the transitions that mutate it.

Every model call is described by a `Ticket` that records the upload epoch
and the similar-problem batch it was issued for. Responses are applied only
while the session still has that epoch/batch, so a late reply from a
replaced upload or a discarded problem set never overwrites newer state.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import messages
from config import MAX_SIMILAR_PROBLEMS
from errors import TutorError, UpstreamError, ValidationError
from models import PracticeProblem, Solution

logger = logging.getLogger(__name__)

ORIGINAL = "original"
SIMILAR = "similar"
SOLVE = "solve"


@dataclass(frozen=True)
class Ticket:
    kind: str
    epoch: int
    batch: int = 0
    payload: object = None
    count: Optional[int] = None
    index: Optional[int] = None


@dataclass
class SessionState:
    file_id: Optional[str] = None
    file_name: Optional[str] = None
    preview: Optional[bytes] = None

    problem_text: str = ""
    solution: Optional[Solution] = None
    problem_count: int = 1
    requested_count: int = 1
    show_original: bool = False

    problems: List[PracticeProblem] = field(default_factory=list)

    solving_original: bool = False
    generating_similar: bool = False
    solving_index: Optional[int] = None

    error: Optional[str] = None

    epoch: int = 0
    batch: int = 0

    @property
    def similar_problems(self):
        return [p.statement for p in self.problems]

    @property
    def similar_solutions(self):
        return [p.solution for p in self.problems]

    @property
    def expanded_indices(self):
        return {i for i, p in enumerate(self.problems) if p.expanded}

    @property
    def busy(self) -> bool:
        return self.solving_original or self.generating_similar or self.solving_index is not None


def clamp_count(value) -> int:
    """Coerces a user-entered quantity into [1, MAX_SIMILAR_PROBLEMS]."""
    try:
        value = int(value)
    except (TypeError, ValueError):
        return 1
    return max(1, min(MAX_SIMILAR_PROBLEMS, value))


class SessionController:
    def __init__(self, state: SessionState = None, language: str = "vi"):
        self.state = state if state is not None else SessionState()
        self.language = language

    def _message(self, key, **kwargs):
        return messages.text(self.language, key, **kwargs)

    def _is_current(self, ticket: Ticket) -> bool:
        s = self.state
        if ticket.epoch != s.epoch:
            return False
        if ticket.kind == ORIGINAL:
            return True
        if ticket.batch != s.batch:
            return False
        if ticket.kind == SOLVE:
            return s.solving_index == ticket.index
        return True

    def _discard(self, ticket: Ticket) -> bool:
        if self._is_current(ticket):
            return False
        logger.info("Discarding stale %s response (epoch=%s batch=%s index=%s)",
                    ticket.kind, ticket.epoch, ticket.batch, ticket.index)
        return True

    # --- Original problem ---

    def upload_image(self, data: bytes, file_name: str = None, file_id: str = None) -> Ticket:
        """Starts a fresh session for a new upload and returns the solve ticket."""
        epoch = self.state.epoch + 1
        self.state = SessionState(
            file_id=file_id,
            file_name=file_name,
            preview=data,
            solving_original=True,
            epoch=epoch,
        )
        logger.info("New upload %r (epoch=%d, %d bytes)", file_name, epoch, len(data))
        return Ticket(kind=ORIGINAL, epoch=epoch, payload=data)

    def original_solved(self, ticket: Ticket, result) -> bool:
        if self._discard(ticket):
            return False
        s = self.state
        s.problem_text = result.problem_text
        s.solution = result.solution
        s.problem_count = result.problem_count
        s.requested_count = clamp_count(result.problem_count)
        s.solving_original = False
        s.error = None
        return True

    def original_failed(self, ticket: Ticket, error: Exception) -> bool:
        if self._discard(ticket):
            return False
        s = self.state
        s.solving_original = False
        if isinstance(error, ValidationError):
            s.error = self._message("error_unsupported_image")
        else:
            s.error = self._message("error_solve_original")
        logger.warning("Solving the original problem failed: %s", error)
        return True

    def toggle_original(self):
        self.state.show_original = not self.state.show_original

    # --- Similar problems ---

    def set_requested_count(self, value) -> int:
        self.state.requested_count = clamp_count(value)
        return self.state.requested_count

    def request_similar(self, count=None) -> Optional[Ticket]:
        """Returns a generate ticket, or None (with an error set) when the request is invalid."""
        s = self.state
        if not s.problem_text:
            s.error = self._message("error_original_required")
            logger.info("Rejected similar-problem request: original not solved")
            return None

        if count is None:
            count = s.requested_count
        if isinstance(count, bool) or not isinstance(count, int) or not 1 <= count <= MAX_SIMILAR_PROBLEMS:
            s.error = self._message("error_count_range", maximum=MAX_SIMILAR_PROBLEMS)
            logger.info("Rejected similar-problem request: count=%r", count)
            return None

        s.requested_count = count
        s.batch += 1
        s.problems = []
        s.solving_index = None
        s.generating_similar = True
        s.error = None
        return Ticket(kind=SIMILAR, epoch=s.epoch, batch=s.batch, payload=s.problem_text, count=count)

    def similar_generated(self, ticket: Ticket, generated) -> bool:
        if self._discard(ticket):
            return False
        s = self.state
        s.problems = [PracticeProblem(statement=p) for p in generated.problems]
        s.generating_similar = False
        return True

    def similar_generation_failed(self, ticket: Ticket, error: Exception) -> bool:
        if self._discard(ticket):
            return False
        s = self.state
        s.problems = []
        s.generating_similar = False
        s.error = self._message("error_generate")
        logger.warning("Generating similar problems failed: %s", error)
        return True

    def clear_similar(self):
        """Drops the current problem set; pending replies for it become stale."""
        s = self.state
        s.batch += 1
        s.problems = []
        s.solving_index = None
        s.generating_similar = False

    # --- Solving one similar problem ---

    def solve_similar(self, index) -> Optional[Ticket]:
        s = self.state
        if s.solving_index is not None:
            logger.info("Ignoring solve request for %r: problem %d is still being solved", index, s.solving_index)
            return None
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(s.problems):
            return None
        s.solving_index = index
        s.error = None
        return Ticket(kind=SOLVE, epoch=s.epoch, batch=s.batch,
                      payload=s.problems[index].statement, index=index)

    def similar_solved(self, ticket: Ticket, result) -> bool:
        if self._discard(ticket):
            return False
        s = self.state
        problem = s.problems[ticket.index]
        problem.solution = result.solution
        problem.expanded = True
        s.solving_index = None
        return True

    def similar_solve_failed(self, ticket: Ticket, error: Exception) -> bool:
        if self._discard(ticket):
            return False
        s = self.state
        s.solving_index = None
        s.error = self._message("error_solve_similar", number=ticket.index + 1)
        logger.warning("Solving similar problem %d failed: %s", ticket.index + 1, error)
        return True

    def toggle_solution(self, index):
        if 0 <= index < len(self.state.problems):
            problem = self.state.problems[index]
            problem.expanded = not problem.expanded

    # --- Dispatch ---

    def resolve(self, ticket: Ticket, result) -> bool:
        if ticket.kind == ORIGINAL:
            return self.original_solved(ticket, result)
        if ticket.kind == SIMILAR:
            return self.similar_generated(ticket, result)
        return self.similar_solved(ticket, result)

    def reject(self, ticket: Ticket, error: Exception) -> bool:
        if ticket.kind == ORIGINAL:
            return self.original_failed(ticket, error)
        if ticket.kind == SIMILAR:
            return self.similar_generation_failed(ticket, error)
        return self.similar_solve_failed(ticket, error)


def execute(engine, ticket: Ticket):
    """Runs the model call a ticket describes. Safe to call from a worker thread."""
    if ticket.kind == ORIGINAL:
        return engine.solve_from_image(ticket.payload)
    if ticket.kind == SIMILAR:
        return engine.generate_similar(ticket.payload, ticket.count)
    if ticket.kind == SOLVE:
        return engine.solve_one(ticket.payload)
    raise ValueError(f"Unknown ticket kind: {ticket.kind}")


def apply_finished(controller: SessionController, jobs):
    """
    Applies every finished (ticket, future) pair to the controller and returns
    the ones still running. Call it from the script thread only.

    Failures that are not a `TutorError` are logged and reported as an
    `UpstreamError`, so the loading flag of the request is always cleared.
    """
    pending = []
    for ticket, future in jobs:
        if not future.done():
            pending.append((ticket, future))
            continue
        try:
            result = future.result()
        except TutorError as e:
            controller.reject(ticket, e)
        except Exception as e:
            logger.exception("Unexpected failure in %s job", ticket.kind)
            controller.reject(ticket, UpstreamError(str(e)))
        else:
            controller.resolve(ticket, result)
    return pending
