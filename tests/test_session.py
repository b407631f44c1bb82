import unittest
from concurrent.futures import Future
from unittest.mock import MagicMock
import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import messages
import session
from config import MAX_SIMILAR_PROBLEMS
from errors import ResponseFormatError, UpstreamError, ValidationError
from models import GeneratedProblems, ProblemSolutionResult, Solution
from session import SessionController, Ticket, execute


def make_result(text="Solve 2x+3=7", count=1, steps="Step 1...", svg=None):
    return ProblemSolutionResult(problem_text=text, problem_count=count, solution=Solution(steps=steps, svg=svg))


class TestSessionController(unittest.TestCase):
    def setUp(self):
        self.controller = SessionController(language="en")

    def solved_controller(self, count=1):
        ticket = self.controller.upload_image(b"img", "p.png", "f1")
        self.controller.original_solved(ticket, make_result(count=count))
        return self.controller

    def with_problems(self, problems=("P1", "P2", "P3")):
        c = self.solved_controller()
        ticket = c.request_similar(len(problems))
        c.similar_generated(ticket, GeneratedProblems(problems=list(problems)))
        return c

    # --- upload / original ---

    def test_upload_resets_every_derived_field(self):
        c = self.with_problems()
        ticket = c.solve_similar(0)
        c.similar_solved(ticket, make_result("P1"))
        c.toggle_original()
        c.state.error = "old error"

        ticket = c.upload_image(b"new", "q.png", "f2")

        s = c.state
        self.assertEqual(ticket.kind, session.ORIGINAL)
        self.assertEqual(ticket.payload, b"new")
        self.assertEqual(s.preview, b"new")
        self.assertEqual(s.file_id, "f2")
        self.assertEqual(s.problem_text, "")
        self.assertIsNone(s.solution)
        self.assertEqual(s.problem_count, 1)
        self.assertEqual(s.requested_count, 1)
        self.assertFalse(s.show_original)
        self.assertEqual(s.problems, [])
        self.assertEqual(s.similar_solutions, [])
        self.assertEqual(s.expanded_indices, set())
        self.assertIsNone(s.error)
        self.assertTrue(s.solving_original)

    def test_original_solved_scenario(self):
        c = self.controller
        ticket = c.upload_image(b"img", "p.png", "f1")
        self.assertTrue(c.original_solved(ticket, make_result()))

        s = c.state
        self.assertEqual(s.problem_text, "Solve 2x+3=7")
        self.assertEqual(s.solution.steps, "Step 1...")
        self.assertIsNone(s.solution.svg)
        self.assertFalse(s.solving_original)
        self.assertFalse(s.show_original)
        c.toggle_original()
        self.assertTrue(s.show_original)

    def test_detected_count_seeds_requested_count(self):
        c = self.solved_controller(count=4)
        self.assertEqual(c.state.problem_count, 4)
        self.assertEqual(c.state.requested_count, 4)

        c = SessionController()
        ticket = c.upload_image(b"img")
        c.original_solved(ticket, make_result(count=50))
        self.assertEqual(c.state.requested_count, MAX_SIMILAR_PROBLEMS)

    def test_original_failure_keeps_state_and_sets_error(self):
        c = self.controller
        ticket = c.upload_image(b"img")
        self.assertTrue(c.original_failed(ticket, ResponseFormatError("bad json")))
        self.assertEqual(c.state.error, messages.text("en", "error_solve_original"))
        self.assertFalse(c.state.solving_original)
        self.assertIsNone(c.state.solution)

    def test_unsupported_image_has_its_own_message(self):
        c = self.controller
        ticket = c.upload_image(b"not an image")
        c.original_failed(ticket, ValidationError("format"))
        self.assertEqual(c.state.error, messages.text("en", "error_unsupported_image"))

    def test_stale_original_response_is_discarded(self):
        c = self.controller
        first = c.upload_image(b"one", "one.png", "f1")
        second = c.upload_image(b"two", "two.png", "f2")

        self.assertFalse(c.original_solved(first, make_result("old problem")))
        self.assertEqual(c.state.problem_text, "")
        self.assertTrue(c.state.solving_original)

        self.assertFalse(c.original_failed(first, UpstreamError("late")))
        self.assertIsNone(c.state.error)

        self.assertTrue(c.original_solved(second, make_result("new problem")))
        self.assertEqual(c.state.problem_text, "new problem")

    # --- similar generation ---

    def test_request_similar_requires_solved_original(self):
        c = self.controller
        self.assertIsNone(c.request_similar(3))
        self.assertEqual(c.state.error, messages.text("en", "error_original_required"))
        self.assertFalse(c.state.generating_similar)

    def test_request_similar_rejects_out_of_range_counts(self):
        c = self.solved_controller()
        for bad in (0, -1, MAX_SIMILAR_PROBLEMS + 1, 2.5, "3", True):
            c.state.error = None
            self.assertIsNone(c.request_similar(bad))
            self.assertEqual(c.state.error, messages.text("en", "error_count_range", maximum=MAX_SIMILAR_PROBLEMS))
            self.assertFalse(c.state.generating_similar)

    def test_request_similar_accepts_whole_range(self):
        for count in range(1, MAX_SIMILAR_PROBLEMS + 1):
            c = SessionController()
            ticket = c.upload_image(b"img")
            c.original_solved(ticket, make_result())
            ticket = c.request_similar(count)
            self.assertIsNotNone(ticket)
            self.assertEqual(ticket.kind, session.SIMILAR)
            self.assertEqual(ticket.count, count)
            self.assertEqual(ticket.payload, "Solve 2x+3=7")
            self.assertTrue(c.state.generating_similar)

    def test_request_similar_uses_requested_count_by_default(self):
        c = self.solved_controller()
        self.assertEqual(c.set_requested_count(7), 7)
        self.assertEqual(c.request_similar().count, 7)

    def test_set_requested_count_clamps(self):
        c = self.controller
        self.assertEqual(c.set_requested_count(0), 1)
        self.assertEqual(c.set_requested_count(99), MAX_SIMILAR_PROBLEMS)
        self.assertEqual(c.set_requested_count("abc"), 1)
        self.assertEqual(c.set_requested_count("5"), 5)

    def test_generated_problems_start_unsolved(self):
        c = self.with_problems(("P1", "P2", "P3"))
        self.assertEqual(c.state.similar_problems, ["P1", "P2", "P3"])
        self.assertEqual(c.state.similar_solutions, [None, None, None])
        self.assertEqual(c.state.expanded_indices, set())
        self.assertFalse(c.state.generating_similar)

    def test_request_similar_clears_previous_set(self):
        c = self.with_problems()
        ticket = c.solve_similar(1)
        c.similar_solved(ticket, make_result("P2"))

        c.request_similar(2)
        self.assertEqual(c.state.problems, [])
        self.assertIsNone(c.state.solving_index)

    def test_malformed_generation_leaves_no_partial_state(self):
        c = self.solved_controller()
        ticket = c.request_similar(3)
        self.assertTrue(c.similar_generation_failed(ticket, ResponseFormatError("bad")))
        self.assertEqual(c.state.problems, [])
        self.assertEqual(c.state.similar_solutions, [])
        self.assertFalse(c.state.generating_similar)
        self.assertEqual(c.state.error, messages.text("en", "error_generate"))

    def test_stale_generation_is_discarded(self):
        c = self.solved_controller()
        old = c.request_similar(2)
        new = c.request_similar(3)
        self.assertFalse(c.similar_generated(old, GeneratedProblems(problems=["A", "B"])))
        self.assertEqual(c.state.problems, [])
        self.assertTrue(c.similar_generated(new, GeneratedProblems(problems=["P1", "P2", "P3"])))
        self.assertEqual(len(c.state.problems), 3)

    def test_generation_from_previous_upload_is_discarded(self):
        c = self.solved_controller()
        ticket = c.request_similar(2)
        c.upload_image(b"other")
        self.assertFalse(c.similar_generated(ticket, GeneratedProblems(problems=["A", "B"])))
        self.assertEqual(c.state.problems, [])

    def test_clear_similar_makes_pending_replies_stale(self):
        c = self.with_problems()
        ticket = c.solve_similar(0)
        c.clear_similar()
        self.assertEqual(c.state.problems, [])
        self.assertIsNone(c.state.solving_index)
        self.assertFalse(c.similar_solved(ticket, make_result("P1")))

    # --- solving one similar problem ---

    def test_solve_similar_scenario(self):
        c = self.with_problems(("P1", "P2", "P3"))
        ticket = c.solve_similar(1)
        self.assertEqual(ticket.kind, session.SOLVE)
        self.assertEqual(ticket.payload, "P2")
        self.assertEqual(c.state.solving_index, 1)

        solution = Solution(steps="steps for P2")
        result = ProblemSolutionResult(problem_text="P2", problem_count=1, solution=solution)
        self.assertTrue(c.similar_solved(ticket, result))
        self.assertEqual(c.state.similar_solutions, [None, solution, None])
        self.assertEqual(c.state.expanded_indices, {1})
        self.assertIsNone(c.state.solving_index)

    def test_only_one_solve_in_flight(self):
        c = self.with_problems()
        first = c.solve_similar(0)
        self.assertIsNotNone(first)
        before = (c.state.solving_index, c.state.error, c.state.similar_solutions)

        self.assertIsNone(c.solve_similar(2))
        self.assertEqual((c.state.solving_index, c.state.error, c.state.similar_solutions), before)

    def test_solve_similar_out_of_bounds_is_noop(self):
        c = self.with_problems()
        for bad in (-1, 3, 10, None, True):
            self.assertIsNone(c.solve_similar(bad))
        self.assertIsNone(c.state.solving_index)

    def test_failed_solve_is_scoped_and_retryable(self):
        c = self.with_problems()
        ok = c.solve_similar(0)
        c.similar_solved(ok, make_result("P1"))

        failed = c.solve_similar(2)
        self.assertTrue(c.similar_solve_failed(failed, UpstreamError("timeout")))
        self.assertEqual(c.state.error, messages.text("en", "error_solve_similar", number=3))
        self.assertIsNone(c.state.solving_index)
        self.assertIsNone(c.state.similar_solutions[2])
        self.assertIsNotNone(c.state.similar_solutions[0])
        self.assertEqual(c.state.expanded_indices, {0})

        retry = c.solve_similar(2)
        self.assertIsNotNone(retry)
        self.assertIsNone(c.state.error)

    # --- toggles ---

    def test_toggles_are_idempotent_in_pairs(self):
        c = self.with_problems()
        ticket = c.solve_similar(1)
        c.similar_solved(ticket, make_result("P2"))

        c.toggle_original()
        c.toggle_original()
        self.assertFalse(c.state.show_original)

        c.toggle_solution(1)
        self.assertEqual(c.state.expanded_indices, set())
        c.toggle_solution(1)
        self.assertEqual(c.state.expanded_indices, {1})

        c.toggle_solution(5)
        self.assertEqual(c.state.expanded_indices, {1})

    # --- dispatch ---

    def test_resolve_and_reject_dispatch_by_kind(self):
        c = self.controller
        ticket = c.upload_image(b"img")
        self.assertTrue(c.resolve(ticket, make_result()))
        ticket = c.request_similar(2)
        self.assertTrue(c.reject(ticket, ResponseFormatError("bad")))
        self.assertEqual(c.state.error, messages.text("en", "error_generate"))

    def test_busy_flag(self):
        c = self.controller
        self.assertFalse(c.state.busy)
        ticket = c.upload_image(b"img")
        self.assertTrue(c.state.busy)
        c.original_solved(ticket, make_result())
        self.assertFalse(c.state.busy)


class TestApplyFinished(unittest.TestCase):
    def setUp(self):
        self.controller = SessionController(language="en")

    def finished(self, result=None, error=None):
        future = Future()
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)
        return future

    def test_unexpected_error_clears_original_flag(self):
        ticket = self.controller.upload_image(b"img")
        with self.assertLogs("session", level="ERROR"):
            pending = session.apply_finished(self.controller, [(ticket, self.finished(error=KeyError("boom")))])
        self.assertEqual(pending, [])
        self.assertFalse(self.controller.state.solving_original)
        self.assertEqual(self.controller.state.error, messages.text("en", "error_solve_original"))

    def test_unexpected_error_clears_generate_and_solve_flags(self):
        c = self.controller
        c.original_solved(c.upload_image(b"img"), make_result())
        generate = c.request_similar(2)
        session.apply_finished(c, [(generate, self.finished(error=AttributeError("x")))])
        self.assertFalse(c.state.generating_similar)

        generate = c.request_similar(2)
        session.apply_finished(c, [(generate, self.finished(GeneratedProblems(problems=["P1", "P2"])))])
        solve = c.solve_similar(1)
        session.apply_finished(c, [(solve, self.finished(error=TypeError("y")))])
        self.assertIsNone(c.state.solving_index)
        self.assertEqual(c.state.error, messages.text("en", "error_solve_similar", number=2))

    def test_tutor_errors_and_results_are_applied(self):
        c = self.controller
        ticket = c.upload_image(b"img")
        session.apply_finished(c, [(ticket, self.finished(error=ValidationError("gif")))])
        self.assertEqual(c.state.error, messages.text("en", "error_unsupported_image"))

        ticket = c.upload_image(b"img2")
        session.apply_finished(c, [(ticket, self.finished(make_result("Find x")))])
        self.assertEqual(c.state.problem_text, "Find x")

    def test_running_jobs_stay_pending(self):
        ticket = self.controller.upload_image(b"img")
        running = Future()
        pending = session.apply_finished(self.controller, [(ticket, running)])
        self.assertEqual(pending, [(ticket, running)])
        self.assertTrue(self.controller.state.solving_original)


class TestExecute(unittest.TestCase):
    def test_routes_tickets_to_engine(self):
        engine = MagicMock()
        execute(engine, Ticket(kind=session.ORIGINAL, epoch=1, payload=b"img"))
        engine.solve_from_image.assert_called_once_with(b"img")

        execute(engine, Ticket(kind=session.SIMILAR, epoch=1, batch=1, payload="P", count=3))
        engine.generate_similar.assert_called_once_with("P", 3)

        execute(engine, Ticket(kind=session.SOLVE, epoch=1, batch=1, payload="P2", index=1))
        engine.solve_one.assert_called_once_with("P2")

    def test_unknown_kind(self):
        with self.assertRaises(ValueError):
            execute(MagicMock(), Ticket(kind="other", epoch=0))


if __name__ == "__main__":
    unittest.main()
