import itertools
import unittest

from syllabus_ingest.clients.memory_stores import InMemoryTaskStore
from syllabus_ingest.schemas.documents import ClassContext
from syllabus_ingest.schemas.shared import AssessmentRecord, AssignmentRecord, ExtractionResult
from syllabus_ingest.services.task_generation_service import (
    ConfidenceInputs,
    TaskGenerator,
    default_confidence_scorer,
    normalize_date,
)

CONTEXT = ClassContext(class_id="class-1", class_name="CS 101", term_year=2025)
SYLLABUS_TEXT = "Homework, quizzes, a midterm exam and a final project make up the grade."


def _homework(number, due=None, source=None):
    return AssignmentRecord(
        kind="homework", number=str(number), dueDate=due, rawMatchText=f"Homework {number}", dueDateSource=source
    )


class FlakyTaskStore(InMemoryTaskStore):
    def __init__(self, failing_titles):
        super().__init__()
        self.failing_titles = set(failing_titles)

    async def create_task(self, task):
        if task["title"] in self.failing_titles:
            raise RuntimeError("database unavailable")
        return await super().create_task(task)


class TestConfidenceScorer(unittest.TestCase):
    def test_scores_stay_in_unit_interval(self):
        for source, kind, fmt in itertools.product(
            [None, "due_phrase", "assessment", "week", "proximity", "anchored", "semantic"], [True, False], [True, False]
        ):
            score = default_confidence_scorer(ConfidenceInputs(source, kind, fmt))
            self.assertGreaterEqual(score, 0.0)
            self.assertLessEqual(score, 1.0)

    def test_explicit_dates_outrank_fallback_dates(self):
        explicit = [
            default_confidence_scorer(ConfidenceInputs("due_phrase", kind, fmt))
            for kind, fmt in itertools.product([True, False], repeat=2)
        ]
        fallback = [
            default_confidence_scorer(ConfidenceInputs(source, kind, fmt))
            for source in ("week", "proximity", "anchored", "semantic")
            for kind, fmt in itertools.product([True, False], repeat=2)
        ]
        missing = [
            default_confidence_scorer(ConfidenceInputs(None, kind, fmt))
            for kind, fmt in itertools.product([True, False], repeat=2)
        ]
        self.assertGreater(min(explicit), max(fallback))
        self.assertGreater(min(fallback), max(missing))

    def test_format_bonus_needs_a_date(self):
        self.assertEqual(
            default_confidence_scorer(ConfidenceInputs(None, True, True)),
            default_confidence_scorer(ConfidenceInputs(None, True, False)),
        )
        self.assertLess(default_confidence_scorer(ConfidenceInputs(None, True, True)), 0.35)


class TestNormalizeDate(unittest.TestCase):
    def test_supported_formats(self):
        self.assertEqual(normalize_date("3/14", 2025), "2025-03-14")
        self.assertEqual(normalize_date("3/14/24", 2025), "2024-03-14")
        self.assertEqual(normalize_date("03/14/2026", 2025), "2026-03-14")
        self.assertEqual(normalize_date("3.14", 2025), "2025-03-14")
        self.assertEqual(normalize_date("March 14", 2025), "2025-03-14")
        self.assertEqual(normalize_date("Oct. 3", 2025), "2025-10-03")
        self.assertEqual(normalize_date("Sept 5th", 2025), "2025-09-05")

    def test_invalid_dates_are_none(self):
        self.assertIsNone(normalize_date("2/30", 2025))
        self.assertIsNone(normalize_date("next Friday", 2025))
        self.assertIsNone(normalize_date(None, 2025))


class TestTaskGenerator(unittest.TestCase):
    def setUp(self):
        self.generator = TaskGenerator(InMemoryTaskStore())

    def test_assignments_become_tasks_with_iso_dates(self):
        result = ExtractionResult(
            assignments=[_homework(1, "3/14", "due_phrase"), _homework(2)],
        )
        generated = self.generator.generate(result, CONTEXT, SYLLABUS_TEXT)

        first, second = generated.tasks
        self.assertEqual(first.title, "Homework 1")
        self.assertEqual(first.dueDate, "2025-03-14")
        self.assertEqual(first.taskType, "assignment")
        self.assertEqual(first.confidence, 1.0)
        self.assertIsNone(second.dueDate)
        self.assertEqual(second.confidence, 0.25)
        self.assertAlmostEqual(generated.averageConfidence, 0.625)
        self.assertEqual(generated.warnings, [])

    def test_exam_overlapping_final_is_dropped(self):
        result = ExtractionResult(
            assessments=[
                AssessmentRecord(kind="midterm", date="3/10", rawMatchText="Midterm exam on 3/10"),
                AssessmentRecord(kind="exam", date="May 5", rawMatchText="Exam: May 5"),
                AssessmentRecord(kind="final", date="May 5", rawMatchText="Final Exam: May 5"),
            ]
        )
        generated = self.generator.generate(result, CONTEXT)

        self.assertEqual([task.title for task in generated.tasks], ["Midterm", "Final Exam"])
        self.assertEqual(generated.tasks[1].dueDate, "2025-05-05")
        self.assertEqual(generated.tasks[1].taskType, "exam")

    def test_repeated_assessment_kinds_are_numbered(self):
        result = ExtractionResult(
            assessments=[
                AssessmentRecord(kind="quiz", date="2/1", rawMatchText="Quiz on 2/1"),
                AssessmentRecord(kind="quiz", date="Someday 9", rawMatchText="Quiz on Someday 9"),
            ]
        )
        generated = self.generator.generate(result, CONTEXT)

        self.assertEqual([task.title for task in generated.tasks], ["Quiz 1", "Quiz 2"])
        self.assertIn("Could not interpret the date for Quiz 2", generated.warnings)

    def test_stated_assessment_number_is_kept(self):
        lone = self.generator.generate(
            ExtractionResult(assessments=[AssessmentRecord(kind="quiz", date="9/5", rawMatchText="Quiz 3 on 9/5")]),
            CONTEXT,
        )
        mixed = self.generator.generate(
            ExtractionResult(
                assessments=[
                    AssessmentRecord(kind="quiz", date="9/5", rawMatchText="Quiz on 9/5"),
                    AssessmentRecord(kind="quiz", date="10/3", rawMatchText="Quiz #1 on 10/3"),
                ]
            ),
            CONTEXT,
        )

        self.assertEqual([task.title for task in lone.tasks], ["Quiz 3"])
        self.assertEqual([task.title for task in mixed.tasks], ["Quiz 2", "Quiz 1"])

    def test_duplicates_by_title_and_date_are_removed(self):
        result = ExtractionResult(assignments=[_homework(1, "3/14", "due_phrase"), _homework(1, "3/14", "due_phrase")])
        generated = self.generator.generate(result, CONTEXT)

        self.assertEqual(len(generated.tasks), 1)

    def test_task_cap_keeps_first_tasks(self):
        generator = TaskGenerator(InMemoryTaskStore(), max_tasks=2)
        result = ExtractionResult(assignments=[_homework(n, f"3/{n}", "due_phrase") for n in (1, 2, 3)])
        generated = generator.generate(result, CONTEXT)

        self.assertEqual([task.title for task in generated.tasks], ["Homework 1", "Homework 2"])
        self.assertIn("Only the first 2 of 3 tasks were kept", generated.warnings)

    def test_confidence_floor_skips_low_scores(self):
        generator = TaskGenerator(InMemoryTaskStore(), min_confidence=0.5)
        result = ExtractionResult(assignments=[_homework(1, "3/14", "due_phrase"), _homework(2)])
        generated = generator.generate(result, CONTEXT)

        self.assertEqual([task.title for task in generated.tasks], ["Homework 1"])
        self.assertIn("Skipped 1 low-confidence tasks (below 0.50)", generated.warnings)

    def test_non_academic_text_warns(self):
        generated = self.generator.generate(ExtractionResult(), CONTEXT, "Grocery list: apples, bread, milk")

        self.assertEqual(generated.tasks, [])
        self.assertEqual(generated.averageConfidence, 0.0)
        self.assertIn("Content may not be a typical academic syllabus", generated.warnings)


class TestMaterialize(unittest.IsolatedAsyncioTestCase):
    async def test_creates_every_task(self):
        store = InMemoryTaskStore()
        generator = TaskGenerator(store)
        tasks = generator.generate(
            ExtractionResult(assignments=[_homework(1, "3/14", "due_phrase")]), CONTEXT
        ).tasks

        outcome = await generator.materialize(tasks, CONTEXT.class_id)

        self.assertEqual(len(outcome.created), 1)
        self.assertEqual(store.tasks[0].title, "Homework 1")
        self.assertEqual(store.tasks[0].dueDate, "2025-03-14")
        self.assertEqual(store.tasks[0].extra["source"], "syllabus")

    async def test_tasks_carry_type_duration_and_color(self):
        store = InMemoryTaskStore()
        generator = TaskGenerator(store)
        tasks = generator.generate(
            ExtractionResult(
                assignments=[_homework(1, "3/14", "due_phrase")],
                assessments=[AssessmentRecord(kind="quiz", date="2/1", rawMatchText="Quiz on 2/1")],
            ),
            CONTEXT,
        ).tasks

        await generator.materialize(tasks, CONTEXT.class_id)

        by_title = {task.title: task for task in store.tasks}
        self.assertEqual(by_title["Homework 1"].extra["estimatedDuration"], 120)
        self.assertEqual(by_title["Homework 1"].extra["color"], "#3B82F6")
        self.assertEqual(by_title["Quiz"].type, "quiz")
        self.assertEqual(by_title["Quiz"].extra["estimatedDuration"], 30)
        self.assertEqual(by_title["Quiz"].extra["color"], "#F59E0B")

    async def test_single_failure_does_not_stop_the_rest(self):
        store = FlakyTaskStore({"Homework 2"})
        generator = TaskGenerator(store)
        tasks = generator.generate(
            ExtractionResult(assignments=[_homework(n, f"3/{n}", "due_phrase") for n in (1, 2, 3)]), CONTEXT
        ).tasks

        outcome = await generator.materialize(tasks, CONTEXT.class_id)

        self.assertEqual([task.title for task in outcome.created], ["Homework 1", "Homework 3"])
        self.assertEqual(len(outcome.warnings), 1)
        self.assertIn('"Homework 2"', outcome.warnings[0])


if __name__ == "__main__":
    unittest.main()
