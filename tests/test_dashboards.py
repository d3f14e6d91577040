"""
Test: Student, instructor and admin dashboards; profile page helpers.
"""
from datetime import timedelta

import pytest

from conftest import NOW, iso
from edulms.errors import NotFound, UploadError, ValidationError
from edulms.services import dashboards, profile
from edulms.services.datastore import ASSIGNMENTS, SETTINGS, USERS


class TestStudentDashboard:
    def test_stats_pending_and_submitted(self, store):
        stats = dashboards.user_stats(store, store.get(USERS, 'stu1'))
        assert stats == {
            "active_courses": 1,
            "completed_courses": 0,
            "pending_assignments": 2,
            "submitted_assignments": 0,
            "average_grade": 0,
        }

    def test_stats_graded_counts_as_submitted(self, store):
        stats = dashboards.student_stats(store, store.get(USERS, 'stu2'))
        assert stats['submitted_assignments'] == 1
        assert stats['pending_assignments'] == 2
        assert stats['average_grade'] == 85
        assert stats['completed_courses'] == 1
        assert stats['study_hours'] == 0

    def test_upcoming_deadlines_skip_submitted_and_past(self, store):
        deadlines = dashboards.upcoming_deadlines(store, store.get(USERS, 'stu2'), now=NOW)
        assert [a['id'] for a in deadlines] == ['a2']
        assert deadlines[0]['days_until'] == 5

    def test_upcoming_deadlines_sorted(self, store, db):
        db.seed(ASSIGNMENTS, {"id": "a0", "course_id": "c1", "title": "Soonest",
                              "due_date": iso(NOW + timedelta(hours=1)), "max_score": 10})
        deadlines = dashboards.upcoming_deadlines(store, store.get(USERS, 'stu1'), now=NOW)
        assert [a['id'] for a in deadlines] == ['a0', 'a1']

    def test_dashboard_courses(self, store):
        context = dashboards.student_dashboard(store, store.get(USERS, 'stu2'), now=NOW)
        assert [c['id'] for c in context['courses']] == ['c1', 'c2']


class TestInstructorDashboard:
    def test_overview(self, store):
        overview = dashboards.instructor_overview(store, store.get(USERS, 'ins1'))
        (pending,) = overview['pending_submissions']
        assert pending['student_name'] == 'Alice Student'
        assert pending['assignment_title'] == 'Loops Essay'
        assert overview['stats'] == {
            "total_courses": 1,
            "total_students": 2,
            "pending_submissions": 1,
            "average_grade": 85,
        }
        grades = {s['student_id']: s['avg_grade'] for s in overview['students']}
        assert grades == {"stu1": 0, "stu2": 85}

    def test_create_assignment(self, store):
        assignment = dashboards.create_assignment(store, 'ins1', {
            "course_id": "c1", "title": "Final", "due_date": "2026-04-01T10:00", "max_score": "20",
        })
        assert assignment['max_score'] == 20
        assert assignment['due_date'] == '2026-04-01T10:00:00+00:00'
        assert assignment['submission_type'] == 'file'

    def test_create_assignment_requires_fields(self, store):
        with pytest.raises(ValidationError, match="required"):
            dashboards.create_assignment(store, 'ins1', {"course_id": "c1", "title": "Final"})

    def test_create_assignment_other_instructor(self, store):
        with pytest.raises(ValidationError, match="your own courses"):
            dashboards.create_assignment(store, 'ins1', {"course_id": "c2", "title": "X", "due_date": "2026-04-01"})

    def test_create_assignment_bad_score(self, store):
        with pytest.raises(ValidationError, match="greater than 0"):
            dashboards.create_assignment(store, 'ins1', {"course_id": "c1", "title": "X",
                                                         "due_date": "2026-04-01", "max_score": "0"})


class TestAdmin:
    def test_overview_stats(self, store):
        stats = dashboards.admin_overview(store)['stats']
        assert stats == {"total_users": 4, "students": 2, "instructors": 1, "active_courses": 2}

    def test_save_user(self, store):
        dashboards.save_user(store, 'stu1', {"name": "Alice S", "email": "alice@new.com",
                                             "role": "instructor", "status": "suspended"})
        user = store.get(USERS, 'stu1')
        assert (user['name'], user['email'], user['role'], user['status']) == \
            ('Alice S', 'alice@new.com', 'instructor', 'suspended')
        assert user['enrolled_courses'] == ['c1']

    def test_save_user_requires_fields(self, store):
        with pytest.raises(ValidationError, match="fill in all fields"):
            dashboards.save_user(store, 'stu1', {"name": "", "email": "a@b.com"})

    def test_save_user_unknown(self, store):
        with pytest.raises(NotFound):
            dashboards.save_user(store, 'ghost', {"name": "X", "email": "x@y.com"})

    def test_delete_user(self, store):
        dashboards.delete_user(store, 'stu2')
        assert store.get(USERS, 'stu2') is None

    def test_settings_and_backup(self, store, db):
        dashboards.save_settings(store, {"maintenance_mode": "1", "max_file_size": "25"})
        dashboards.perform_backup(store)
        settings = db.tables[SETTINGS]['system']
        assert settings['maintenance_mode'] is True
        assert settings['email_notifications'] is False
        assert settings['max_file_size'] == 25
        assert settings['last_backup']


class TestProfile:
    def test_statistics_keeps_streak_when_active_today(self, store):
        stats = profile.profile_statistics(store, store.get(USERS, 'stu1'), now=NOW)
        assert stats == {"enrolled_courses": 1, "assignments": 2, "average_grade": 0, "streak": 4}

    def test_streak_resets_after_midnight(self, store):
        user = {**store.get(USERS, 'stu1'), "last_login": iso(NOW - timedelta(hours=13))}
        assert profile.profile_statistics(store, user, now=NOW)['streak'] == 0

    def test_streak_resets(self, store):
        stats = profile.profile_statistics(store, store.get(USERS, 'stu1'), now=NOW + timedelta(days=3))
        assert stats['streak'] == 0

    def test_achievements(self, store):
        user = store.get(USERS, 'stu2')
        earned = [a['id'] for a in profile.achievements(user, store.query('grades', [('student_id', '==', 'stu2')]))]
        assert earned == ['first-course', 'good-grades']

    def test_perfect_score_and_explorer(self):
        user = {"enrolled_courses": ['a', 'b', 'c']}
        earned = [a['id'] for a in profile.achievements(user, [{"percentage": 100}])]
        assert earned == ['first-course', 'perfect-score', 'honor-roll', 'good-grades', 'course-explorer']

    def test_course_cards(self, store):
        cards = profile.enrolled_course_cards(store, store.get(USERS, 'stu2'))
        assert [(c['id'], c['grade']) for c in cards] == [('c1', 85), ('c2', 0)]

    def test_save_profile(self, store):
        profile.save_profile(store, 'stu1', {"first_name": "Al", "last_name": "S", "bio": "Hi"})
        user = store.get(USERS, 'stu1')
        assert user['name'] == 'Al S'
        assert user['bio'] == 'Hi'

    def test_save_profile_requires_first_name(self, store):
        with pytest.raises(ValidationError):
            profile.save_profile(store, 'stu1', {"first_name": " "})

    def test_update_setting(self, store):
        settings = profile.update_setting(store, store.get(USERS, 'stu1'), 'dark_mode', True)
        assert settings['dark_mode'] is True
        assert store.get(USERS, 'stu1')['settings']['dark_mode'] is True

    def test_update_unknown_setting(self, store):
        with pytest.raises(ValidationError):
            profile.update_setting(store, store.get(USERS, 'stu1'), 'theme', 'red')

    def test_upload_avatar(self, store, db):
        url = profile.upload_avatar(store, 'stu1', 'image/png', b'\x89PNG')
        assert store.get(USERS, 'stu1')['avatar'] == url
        assert 'avatars/stu1' in db.storage.files

    def test_avatar_must_be_image(self, store):
        with pytest.raises(UploadError):
            profile.upload_avatar(store, 'stu1', 'application/pdf', b'%PDF')
