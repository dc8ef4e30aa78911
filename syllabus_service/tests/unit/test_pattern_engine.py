import unittest
from dataclasses import replace

from syllabus_ingest.extraction import DEFAULT_RULES, PatternExtractionEngine
from syllabus_ingest.schemas.documents import NormalizedText
from syllabus_ingest.schemas.shared import OFFICE_HOURS_PLACEHOLDER, UNKNOWN_NAME

BASIC_TEXT = "Instructor: Dr. Jane Smith jsmith@uni.edu Office Hours: Mon 2-4pm\nHomework 3 due 3/14"


class TestPatternExtractionEngine(unittest.TestCase):
    def setUp(self):
        self.engine = PatternExtractionEngine()

    def test_instructor_contact_and_homework_due_date(self):
        result = self.engine.extract(NormalizedText(text=BASIC_TEXT))

        self.assertEqual(len(result.instructorInfo), 1)
        contact = result.instructorInfo[0]
        self.assertEqual(contact.name, "Jane Smith")
        self.assertEqual(contact.email, "jsmith@uni.edu")
        self.assertIn("Mon 2-4pm", contact.officeHours)

        self.assertEqual(len(result.assignments), 1)
        assignment = result.assignments[0]
        self.assertEqual(assignment.kind, "homework")
        self.assertEqual(assignment.number, "3")
        self.assertIn("3/14", assignment.dueDate)
        self.assertEqual(assignment.dueDateSource, "due_phrase")

    def test_accented_names_are_recognised(self):
        result = self.engine.extract("Professor: María José García mgarcia@uni.edu\nOffice Hours: Tue 1-3pm")

        self.assertEqual(result.instructorInfo[0].name, "María José García")
        self.assertEqual(result.instructorInfo[0].email, "mgarcia@uni.edu")

    def test_text_without_emails_or_weeks_yields_empty_sections(self):
        result = self.engine.extract("Course policies apply to all students enrolled in this class.")

        self.assertEqual(result.instructorInfo, [])
        self.assertEqual(result.taInfo, [])
        self.assertIsNone(result.weeklySchedule)
        self.assertIn("No instructor contact information found", result.warnings)

    def test_empty_text_is_not_an_error(self):
        result = self.engine.extract("")
        self.assertEqual(result.assignments, [])
        self.assertEqual(result.assessments, [])

    def test_duplicate_assignments_keep_first_occurrence(self):
        text = "HW 4 is posted 2/1. Homework 4 due 2/8. Homework 5 due 2/15."
        result = self.engine.extract(text)

        fours = [a for a in result.assignments if a.kind == "homework" and a.number == "4"]
        self.assertEqual(len(fours), 1)
        self.assertEqual(fours[0].rawMatchText, "HW 4")
        self.assertEqual([a.number for a in result.assignments], ["4", "5"])

    def test_extract_is_deterministic(self):
        text = (
            "Instructor: Prof. Alan Turing aturing@uni.edu\n"
            "Office hours: Tue 10-11am\n"
            "Week 1: Homework 1, Quiz\n"
            "Lab 2 due 9/14. Midterm on Oct 3.\n"
        )
        first = self.engine.extract(text)
        second = self.engine.extract(text)
        self.assertEqual(first.model_dump_json(), second.model_dump_json())

    def test_missing_name_defaults_to_unknown_with_placeholder_hours(self):
        result = self.engine.extract("Instructor: jdoe@uni.edu")

        contact = result.instructorInfo[0]
        self.assertEqual(contact.name, UNKNOWN_NAME)
        self.assertEqual(contact.officeHours, OFFICE_HOURS_PLACEHOLDER)
        self.assertIn("Could not identify a name for jdoe@uni.edu", result.warnings)
        self.assertIn("No office hours found for instructor jdoe@uni.edu", result.warnings)

    def test_teaching_assistant_block_and_role_specific_hours(self):
        text = "Teaching Assistant: Alex Brown (abrown@uni.edu)\nTA office hours: Tue 1-2pm"
        result = self.engine.extract(text)

        self.assertEqual(result.instructorInfo, [])
        self.assertEqual(len(result.taInfo), 1)
        self.assertEqual(result.taInfo[0].name, "Alex Brown")
        self.assertEqual(result.taInfo[0].role, "assistant")
        self.assertEqual(result.taInfo[0].officeHours, "Tue 1-2pm")

    def test_multiple_emails_in_one_block(self):
        text = "Instructors: Dr. Ada Lovelace ada@uni.edu, Dr. Grace Hopper grace@uni.edu\n\nGrading"
        result = self.engine.extract(text)

        self.assertEqual([c.name for c in result.instructorInfo], ["Ada Lovelace", "Grace Hopper"])

    def test_assessments_normalize_test_and_scan_final_separately(self):
        text = (
            "The midterm exam is on 10/12. Quiz 2 on Oct. 3. "
            "Test 1 on 4/2. Final Exam: December 12."
        )
        result = self.engine.extract(text)

        kinds = [a.kind for a in result.assessments]
        self.assertEqual(kinds, ["midterm", "quiz", "exam", "exam", "final"])
        self.assertEqual(result.assessments[0].date, "10/12")
        self.assertEqual(result.assessments[1].date, "Oct. 3")
        self.assertEqual(result.assessments[-1].date, "December 12")

    def test_due_date_tiers(self):
        text = "Week 5: Project 1 presentations 4/22\nLab 3 - 3/28\nAssignment 1 due on Friday, 2/7"
        result = self.engine.extract(text)
        by_kind = {a.kind: a for a in result.assignments}

        self.assertEqual(by_kind["assignment"].dueDateSource, "due_phrase")
        self.assertEqual(by_kind["assignment"].dueDate, "2/7")
        self.assertEqual(by_kind["project"].dueDateSource, "week")
        self.assertEqual(by_kind["project"].dueDate, "4/22")
        self.assertEqual(by_kind["lab"].dueDateSource, "proximity")
        self.assertEqual(by_kind["lab"].dueDate, "3/28")

    def test_assignment_without_date_warns(self):
        result = self.engine.extract("Project 2 details will follow")
        self.assertIsNone(result.assignments[0].dueDate)
        self.assertIn("No due date found for Project 2", result.warnings)

    def test_weekly_schedule_groups_by_week_in_order(self):
        text = "Week 2: Lab 1 and Lab 2\nWeek 1: Homework 1 released, Quiz on Friday\nWeek 1 review: Exam"
        result = self.engine.extract(text)

        schedule = [(entry.week, entry.items) for entry in result.weeklySchedule]
        self.assertEqual(schedule, [(1, ["homework", "quiz", "exam"]), (2, ["lab", "lab"])])

    def test_reduced_rule_set_is_honoured(self):
        rules = replace(DEFAULT_RULES, assignment_kinds=(("lab", r"lab"),))
        engine = PatternExtractionEngine(rules)
        result = engine.extract("Homework 3 due 3/14. Lab 2 due 3/20.")

        self.assertEqual([(a.kind, a.number) for a in result.assignments], [("lab", "2")])


if __name__ == "__main__":
    unittest.main()
