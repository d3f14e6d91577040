"""
Test: Courses, submissions and grading.
"""
from datetime import timedelta

import pytest

from conftest import NOW, iso
from edulms.errors import NotFound, UploadError, ValidationError
from edulms.services import courses
from edulms.services.datastore import GRADES, LESSONS, MODULES, SUBMISSIONS, USERS
from edulms.services.grading import average_percentage, grade_submission, parse_score
from edulms.services.submissions import due_status, format_submission_type, submit_assignment


class TestCatalog:
    def test_sorted_by_title(self, store):
        assert [c['title'] for c in courses.list_catalog(store)] == ['Data Science', 'Python Basics']

    def test_filter_category(self, store):
        assert [c['id'] for c in courses.list_catalog(store, category='Programming')] == ['c1']

    def test_categories(self, store):
        assert courses.catalog_categories(store) == ['Data', 'Programming']


class TestCourseDetail:
    def test_detail(self, store):
        detail = courses.course_detail(store, 'c1')
        assert detail['total_modules'] == 2
        assert detail['total_lessons'] == 2
        assert detail['progress'] == 50
        assert [m['name'] for m in detail['modules']] == ['Getting Started', 'Control Flow']
        assert [a['id'] for a in detail['assignments']] == ['a1', 'a2']

    def test_missing_course(self, store):
        with pytest.raises(NotFound):
            courses.course_detail(store, 'nope')

    def test_progress_empty(self):
        assert courses.course_progress([]) == 0

    def test_toggle_lesson(self, store):
        lesson = courses.toggle_lesson_completion(store, 'l2')
        assert lesson['completed'] is True


class TestCourseEditing:
    def test_create_course(self, store):
        instructor = store.get(USERS, 'ins1')
        course = courses.create_course(store, instructor, {"title": " Web Dev ", "code": "wd1", "duration": "12"})
        assert course['title'] == 'Web Dev'
        assert course['code'] == 'WD1'
        assert course['duration'] == 12
        assert course['instructor'] == 'ins1'
        assert course['students'] == []

    def test_create_requires_title(self, store):
        with pytest.raises(ValidationError):
            courses.create_course(store, store.get(USERS, 'ins1'), {"title": "  "})

    def test_add_module_appends_order(self, store):
        module = courses.save_module(store, 'c1', {"name": "Functions"})
        assert module['order'] == 2

    def test_add_lesson(self, store):
        lesson = courses.save_lesson(store, 'c1', 'm1', {"title": "REPL", "type": "video", "video_url": "http://v"})
        assert lesson['order'] == 1
        assert lesson['video_url'] == 'http://v'

    def test_edit_module_of_other_course_rejected(self, store, db):
        db.seed(MODULES, {"id": "m9", "course_id": "c2", "name": "Pandas", "order": 0})
        with pytest.raises(NotFound):
            courses.save_module(store, 'c1', {"name": "Stolen"}, 'm9')
        assert store.get(MODULES, 'm9')['course_id'] == 'c2'

    def test_lesson_in_other_course_module_rejected(self, store, db):
        db.seed(MODULES, {"id": "m9", "course_id": "c2", "name": "Pandas", "order": 0})
        with pytest.raises(NotFound):
            courses.save_lesson(store, 'c1', 'm9', {"title": "Injected"})
        assert db.rows(LESSONS) and all(l['module_id'] != 'm9' for l in db.rows(LESSONS))

    def test_delete_module_removes_lessons(self, store, db):
        courses.delete_module(store, 'm1')
        assert store.get(MODULES, 'm1') is None
        assert [l['id'] for l in db.rows(LESSONS)] == ['l2']


class TestSubmissions:
    def test_text_submission(self, store, db):
        submission, resubmitted = submit_assignment(store, 'stu2', 'a2', {"content": "Loops repeat"})
        assert not resubmitted
        assert submission['status'] == 'submitted'
        assert submission['course_id'] == 'c1'
        assert store.get(USERS, 'stu2')['submissions'] == 2

    def test_resubmission_replaces(self, store, db):
        submission, resubmitted = submit_assignment(store, 'stu1', 'a2', {"content": "New answer"})
        assert resubmitted
        assert submission['id'] == 's1'
        assert submission['content'] == 'New answer'
        assert len([s for s in db.rows(SUBMISSIONS) if s['student_id'] == 'stu1']) == 1

    def test_file_submission_uploads(self, store, db):
        submission, _ = submit_assignment(store, 'stu1', 'a1', {}, ('quiz.pdf', 'application/pdf', b'%PDF'))
        assert submission['file_name'] == 'quiz.pdf'
        assert submission['file_url'].endswith('submissions/stu1/a1/quiz.pdf')
        assert 'submissions/stu1/a1/quiz.pdf' in db.storage.files

    def test_file_required(self, store):
        with pytest.raises(ValidationError, match="select a file"):
            submit_assignment(store, 'stu1', 'a1', {})

    def test_file_type_rejected(self, store):
        with pytest.raises(UploadError, match="not supported"):
            submit_assignment(store, 'stu1', 'a1', {}, ('run.exe', 'application/x-msdownload', b'MZ'))

    def test_empty_text_rejected(self, store):
        with pytest.raises(ValidationError):
            submit_assignment(store, 'stu1', 'a2', {"content": "   "})

    def test_unknown_assignment(self, store):
        with pytest.raises(NotFound):
            submit_assignment(store, 'stu1', 'zzz', {"content": "x"})

    def test_due_status(self):
        assert due_status(iso(NOW - timedelta(hours=1)), NOW) == 'Past Due'
        assert due_status(iso(NOW + timedelta(hours=2)), NOW) == 'Due Today'
        assert due_status(iso(NOW + timedelta(days=3)), NOW) == ''

    def test_submission_type_label(self):
        assert format_submission_type('url') == 'URL/Link'


class TestGrading:
    def test_grade_creates_record(self, store, db):
        submission, grade = grade_submission(store, 'ins1', 's1', '45', 'Nice work')
        assert submission['status'] == 'graded'
        assert submission['graded_by'] == 'ins1'
        assert grade['percentage'] == 90
        assert grade['max_score'] == 50
        assert grade['assignment'] == 'Loops Essay'
        assert len(db.rows(GRADES)) == 2

    def test_score_out_of_range(self, store):
        with pytest.raises(ValidationError, match="between 0 and 50"):
            grade_submission(store, 'ins1', 's1', 51)

    def test_score_not_number(self):
        with pytest.raises(ValidationError):
            parse_score('abc', 100)

    def test_average_percentage(self):
        grades = [{"score": 45, "max_score": 50}, {"score": 80, "max_score": 100}]
        assert average_percentage(grades) == 85

    def test_average_empty(self):
        assert average_percentage([]) == 0
