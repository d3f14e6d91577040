"""
Course catalog, course structure (modules and lessons) and enrollment.
"""
import logging

from edulms.errors import NotFound, ValidationError
from edulms.services.datastore import ASSIGNMENTS, COURSES, LESSONS, MODULES
from edulms.utils import display_name, now_iso, round_half_up, safe_int

logger = logging.getLogger(__name__)

LESSON_TYPES = ('video', 'document', 'text')


def list_catalog(store, category=None, level=None):
    """All courses, optionally narrowed by category/level, sorted by title."""
    filters = []
    if category:
        filters.append(('category', '==', category))
    if level:
        filters.append(('level', '==', level))
    courses = store.query(COURSES, filters)
    return sorted(courses, key=lambda c: (c.get('title') or '').lower())


def catalog_categories(store):
    """Every category in the catalog, independent of the current filter."""
    return sorted({c['category'] for c in store.all(COURSES) if c.get('category')})


def instructor_courses(store, instructor_id):
    return store.query(COURSES, [('instructor', '==', instructor_id)])


def create_course(store, instructor, data):
    title = (data.get('title') or '').strip()
    if not title:
        raise ValidationError("Course title is required")

    course = store.create(COURSES, {
        "title": title,
        "code": (data.get('code') or '').strip().upper(),
        "description": data.get('description', ''),
        "category": data.get('category', ''),
        "level": data.get('level', 'Beginner'),
        "duration": safe_int(data.get('duration')),
        "instructor": instructor['id'],
        "instructor_name": display_name(instructor),
        "students": [],
        "status": "active",
        "updated_at": now_iso(),
    })
    store.log_activity(instructor['id'], display_name(instructor), 'course_created', title)
    logger.info("Course created: %s", course['id'])
    return course


def update_course(store, course_id, data):
    store.get_or_404(COURSES, course_id, "Course")
    fields = {k: data[k] for k in ('title', 'code', 'description', 'category', 'level', 'status') if k in data}
    if 'duration' in data:
        fields['duration'] = safe_int(data['duration'])
    if 'title' in fields and not fields['title'].strip():
        raise ValidationError("Course title is required")
    fields['updated_at'] = now_iso()
    return store.update(COURSES, course_id, fields)


def delete_course(store, course_id):
    store.get_or_404(COURSES, course_id, "Course")
    store.delete(COURSES, course_id)
    logger.info("Course deleted: %s", course_id)


def course_progress(lessons):
    """Percent of completed lessons, rounded. 0 when the course has none."""
    if not lessons:
        return 0
    done = sum(1 for lesson in lessons if lesson.get('completed'))
    return round_half_up(done / len(lessons) * 100)


def load_modules(store, course_id):
    """Modules of a course in order, each with its ordered `lessons` list."""
    modules = store.query(MODULES, [('course_id', '==', course_id)], order_by='order')
    for module in modules:
        module['lessons'] = store.query(LESSONS, [('module_id', '==', module['id'])], order_by='order')
    return modules


def course_detail(store, course_id):
    course = store.get(COURSES, course_id)
    if course is None:
        raise NotFound("Course not found")
    modules = load_modules(store, course_id)
    lessons = [lesson for m in modules for lesson in m['lessons']]
    assignments = store.query(ASSIGNMENTS, [('course_id', '==', course_id)], order_by='due_date')
    return {
        "course": course,
        "modules": modules,
        "assignments": assignments,
        "total_modules": len(modules),
        "total_lessons": len(lessons),
        "progress": course_progress(lessons),
    }


def course_module(store, course_id, module_id):
    """The module, provided it belongs to `course_id`."""
    module = store.get(MODULES, module_id)
    if module is None or module.get('course_id') != course_id:
        raise NotFound("Module not found")
    return module


def save_module(store, course_id, data, module_id=None):
    name = (data.get('name') or '').strip()
    if not name:
        raise ValidationError("Module name is required")
    fields = {
        "course_id": course_id,
        "name": name,
        "description": data.get('description', ''),
        "duration": safe_int(data.get('duration')),
    }
    if module_id:
        course_module(store, course_id, module_id)
        return store.update(MODULES, module_id, fields)
    fields['order'] = len(store.query(MODULES, [('course_id', '==', course_id)]))
    return store.create(MODULES, fields)


def delete_module(store, module_id):
    """Delete a module and every lesson inside it."""
    for lesson in store.query(LESSONS, [('module_id', '==', module_id)]):
        store.delete(LESSONS, lesson['id'])
    store.delete(MODULES, module_id)


def save_lesson(store, course_id, module_id, data):
    title = (data.get('title') or '').strip()
    if not title:
        raise ValidationError("Lesson title is required")
    course_module(store, course_id, module_id)

    lesson_type = data.get('type') if data.get('type') in LESSON_TYPES else 'text'
    fields = {
        "module_id": module_id,
        "course_id": course_id,
        "title": title,
        "type": lesson_type,
        "description": data.get('description', ''),
        "duration": safe_int(data.get('duration')),
        "required": bool(data.get('required')),
        "order": len(store.query(LESSONS, [('module_id', '==', module_id)])),
        "completed": False,
    }
    if lesson_type == 'video':
        fields['video_url'] = data.get('video_url', '')
    elif lesson_type == 'document':
        fields['document_url'] = data.get('document_url', '')
    return store.create(LESSONS, fields)


def toggle_lesson_completion(store, lesson_id):
    lesson = store.get_or_404(LESSONS, lesson_id, "Lesson")
    return store.update(LESSONS, lesson_id, {"completed": not lesson.get('completed')})
