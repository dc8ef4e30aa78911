import unittest

from syllabus_ingest.core.errors import AugmentationError
from syllabus_ingest.schemas.shared import (
    OFFICE_HOURS_PLACEHOLDER,
    AssessmentRecord,
    AssignmentRecord,
    ContactRecord,
    ExtractionResult,
)
from syllabus_ingest.services.augmentation_service import AugmentationStage


class FixedScores:
    def __init__(self, scores=None, error=None):
        self.scores = scores
        self.error = error
        self.calls = []

    async def rank(self, query, candidates):
        self.calls.append((query, list(candidates)))
        if self.error:
            raise self.error
        return self.scores


def _contact_result(office_hours=OFFICE_HOURS_PLACEHOLDER):
    warnings = []
    if office_hours == OFFICE_HOURS_PLACEHOLDER:
        warnings.append("No office hours found for instructor Jane Smith")
    return ExtractionResult(
        instructorInfo=[
            ContactRecord(role="instructor", name="Jane Smith", email="jsmith@uni.edu", officeHours=office_hours)
        ],
        warnings=warnings,
    )


class TestAugmentationStage(unittest.IsolatedAsyncioTestCase):
    async def test_anchored_office_hours_fill_placeholder(self):
        result = _contact_result()
        refined = await AugmentationStage().augment(result, "Smith holds office hours: Thu 10-11am")

        self.assertEqual(refined.instructorInfo[0].officeHours, "Thu 10-11am")
        self.assertNotIn("No office hours found for instructor Jane Smith", refined.warnings)

    async def test_input_result_is_not_mutated(self):
        result = _contact_result()
        await AugmentationStage().augment(result, "Smith holds office hours: Thu 10-11am")

        self.assertEqual(result.instructorInfo[0].officeHours, OFFICE_HOURS_PLACEHOLDER)
        self.assertEqual(len(result.warnings), 1)

    async def test_found_office_hours_are_kept_without_anchored_match(self):
        result = _contact_result(office_hours="Mon 2-4pm")
        refined = await AugmentationStage().augment(result, "Nothing relevant here.")

        self.assertEqual(refined.instructorInfo[0].officeHours, "Mon 2-4pm")

    async def test_missing_due_date_is_anchored(self):
        result = ExtractionResult(
            assignments=[AssignmentRecord(kind="homework", number="2", rawMatchText="Homework 2")],
            warnings=["No due date found for Homework 2"],
        )
        refined = await AugmentationStage().augment(result, "Homework 2 (see 2/20 for details)")

        self.assertEqual(refined.assignments[0].dueDate, "2/20")
        self.assertEqual(refined.assignments[0].dueDateSource, "anchored")
        self.assertEqual(refined.warnings, [])

    async def test_semantic_tie_break_picks_highest_score(self):
        result = ExtractionResult(
            assignments=[
                AssignmentRecord(
                    kind="project", number="1", dueDate="3/1", rawMatchText="Project 1", dueDateSource="proximity"
                )
            ]
        )
        similarity = FixedScores(scores=[0.1, 0.9])
        refined = await AugmentationStage(similarity).augment(result, "Project 1 kickoff 3/1, final report 4/15")

        self.assertEqual(refined.assignments[0].dueDate, "4/15")
        self.assertEqual(refined.assignments[0].dueDateSource, "semantic")
        query, candidates = similarity.calls[0]
        self.assertEqual(query, "Project 1 due date")
        self.assertEqual(len(candidates), 2)

    async def test_tied_scores_keep_earliest_candidate(self):
        result = ExtractionResult(
            assignments=[
                AssignmentRecord(
                    kind="project", number="1", dueDate="3/1", rawMatchText="Project 1", dueDateSource="proximity"
                )
            ]
        )
        refined = await AugmentationStage(FixedScores(scores=[0.5, 0.5])).augment(
            result, "Project 1 kickoff 3/1, final report 4/15"
        )

        self.assertEqual(refined.assignments[0].dueDate, "3/1")
        self.assertEqual(refined.assignments[0].dueDateSource, "proximity")

    async def test_similarity_failure_keeps_rule_based_date(self):
        result = ExtractionResult(
            assignments=[
                AssignmentRecord(
                    kind="project", number="1", dueDate="3/1", rawMatchText="Project 1", dueDateSource="proximity"
                )
            ]
        )
        similarity = FixedScores(error=AugmentationError("embedding service unavailable"))
        refined = await AugmentationStage(similarity).augment(result, "Project 1 kickoff 3/1, final report 4/15")

        self.assertEqual(refined.assignments[0].dueDate, "3/1")
        self.assertEqual(refined.warnings, [])

    async def test_unreachable_similarity_service_keeps_rule_based_date(self):
        result = ExtractionResult(
            assignments=[
                AssignmentRecord(
                    kind="project", number="1", dueDate="3/1", rawMatchText="Project 1", dueDateSource="proximity"
                )
            ]
        )
        similarity = FixedScores(error=ConnectionError("connection refused"))
        refined = await AugmentationStage(similarity).augment(result, "Project 1 kickoff 3/1, final report 4/15")

        self.assertEqual(len(similarity.calls), 1)
        self.assertEqual(refined.assignments[0].dueDate, "3/1")
        self.assertEqual(refined.assignments[0].dueDateSource, "proximity")

    async def test_explicit_due_phrase_is_not_second_guessed(self):
        result = ExtractionResult(
            assignments=[
                AssignmentRecord(
                    kind="homework", number="1", dueDate="3/1", rawMatchText="Homework 1", dueDateSource="due_phrase"
                )
            ]
        )
        similarity = FixedScores(scores=[0.0, 1.0])
        refined = await AugmentationStage(similarity).augment(result, "Homework 1 due 3/1, graded by 3/8")

        self.assertEqual(refined.assignments[0].dueDate, "3/1")
        self.assertEqual(similarity.calls, [])

    async def test_assessment_time_is_attached(self):
        result = ExtractionResult(
            assessments=[AssessmentRecord(kind="midterm", date="3/14", rawMatchText="Midterm on 3/14")]
        )
        refined = await AugmentationStage().augment(result, "Midterm on 3/14 at 7:00 pm in Hall A")

        self.assertEqual(refined.assessments[0].time, "7:00 pm")


if __name__ == "__main__":
    unittest.main()
