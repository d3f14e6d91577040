"""
Gradebook: joins submissions against course/assignment/user lookups, then
filters, sorts, paginates and exports the rows (CSV or PDF).
"""
import csv
import io
import logging
import math
import time
from datetime import datetime

from edulms.services.datastore import ASSIGNMENTS, COURSES, SUBMISSIONS, USERS
from edulms.services.courses import instructor_courses
from edulms.utils import (
    LETTER_RANGES, calculate_percentage, display_name, format_date, letter_grade, parse_timestamp,
)

logger = logging.getLogger(__name__)

CSV_HEADERS = ['Student Name', 'Email', 'Course', 'Assignment', 'Grade', 'Max Points',
               'Percentage', 'Letter Grade', 'Status', 'Submitted Date']
PDF_HEADERS = ['Student', 'Course', 'Grade', 'Percentage', 'Status']
SORT_OPTIONS = ('name', 'grade', 'submitted')
DEFAULT_MAX_POINTS = 100


def load_rows(store, viewer):
    """
    Gradebook rows visible to `viewer`.

    Instructors see every submission in the courses they teach; everybody
    else sees only their own submissions.
    """
    if viewer.get('role') == 'instructor':
        courses = {c['id']: c for c in instructor_courses(store, viewer['id'])}
        submissions = []
        for course_id in courses:
            submissions.extend(store.query(SUBMISSIONS, [('course_id', '==', course_id)]))
        students = store.get_many(USERS, [s.get('student_id') for s in submissions])
    else:
        submissions = store.query(SUBMISSIONS, [('student_id', '==', viewer['id'])])
        courses = store.get_many(COURSES, [s.get('course_id') for s in submissions])
        students = {viewer['id']: viewer}

    assignments = store.get_many(ASSIGNMENTS, [s.get('assignment_id') for s in submissions])
    return [build_row(s, students, courses, assignments) for s in submissions]


def build_row(submission, students, courses, assignments):
    student = students.get(submission.get('student_id'))
    course = courses.get(submission.get('course_id'))
    assignment = assignments.get(submission.get('assignment_id'))
    max_points = (assignment or {}).get('max_score') or DEFAULT_MAX_POINTS
    score = submission.get('score')
    percentage = calculate_percentage(score, max_points)
    return {
        "id": submission['id'],
        "student_id": submission.get('student_id'),
        "student_name": display_name(student) if student else 'Unknown',
        "student_email": (student or {}).get('email', 'Unknown'),
        "course_id": submission.get('course_id'),
        "course_name": (course or {}).get('title', 'Unknown'),
        "assignment_id": submission.get('assignment_id'),
        "assignment_name": (assignment or {}).get('title', 'Unknown'),
        "score": score,
        "max_points": max_points,
        "percentage": percentage,
        "letter": letter_grade(percentage),
        "status": submission.get('status') or 'pending',
        "feedback": submission.get('feedback'),
        "submitted_at": submission.get('submitted_at'),
    }


def apply_filters(rows, course_id=None, letter=None):
    """Keep rows in `course_id` whose percentage falls in the `letter` band."""
    band = LETTER_RANGES.get(letter) if letter else None
    result = []
    for row in rows:
        if course_id and row['course_id'] != course_id:
            continue
        if band and not (band[0] <= row['percentage'] <= band[1]):
            continue
        result.append(row)
    return result


def _submitted_key(row):
    dt = parse_timestamp(row.get('submitted_at'))
    return dt.timestamp() if dt else float('-inf')


def sort_rows(rows, sort_by):
    """name: A-Z; grade: highest first; submitted: newest first. Unknown keys keep order."""
    if sort_by == 'name':
        return sorted(rows, key=lambda r: (r['student_name'] or '').lower())
    if sort_by == 'grade':
        return sorted(rows, key=lambda r: r['score'] or 0, reverse=True)
    if sort_by == 'submitted':
        return sorted(rows, key=_submitted_key, reverse=True)
    return list(rows)


def paginate(rows, page=1, per_page=20):
    total = len(rows)
    pages = max(1, math.ceil(total / per_page))
    page = min(max(1, page), pages)
    start = (page - 1) * per_page
    end = min(start + per_page, total)
    return {
        "rows": rows[start:end],
        "page": page,
        "pages": pages,
        "total": total,
        "start": start + 1 if total else 0,
        "end": end,
        "has_prev": page > 1,
        "has_next": page < pages,
    }


def statistics(rows):
    """Average/highest/lowest percentage over graded rows only."""
    graded = [r['percentage'] for r in rows if r['status'] == 'graded']
    if not graded:
        return {"average": None, "highest": None, "lowest": None, "graded_count": 0}
    return {
        "average": round(sum(graded) / len(graded), 1),
        "highest": max(graded),
        "lowest": min(graded),
        "graded_count": len(graded),
    }


def export_filename(extension):
    return f"gradebook-{int(time.time() * 1000)}.{extension}"


def export_csv(rows):
    """CSV text with every cell quoted."""
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerow(CSV_HEADERS)
    for row in rows:
        writer.writerow([
            row['student_name'],
            row['student_email'],
            row['course_name'],
            row['assignment_name'],
            row['score'] if row['score'] is not None else '-',
            row['max_points'],
            f"{row['percentage']}%",
            row['letter'],
            row['status'],
            format_date(row['submitted_at']),
        ])
    return output.getvalue()


def export_pdf(rows, stats=None):
    """Gradebook report as PDF bytes."""
    from reportlab.lib.colors import lightgrey, grey
    from reportlab.lib.enums import TA_CENTER
    from reportlab.lib.pagesizes import letter
    from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
    from reportlab.lib.units import inch
    from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

    stats = stats or statistics(rows)
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'GradebookTitle', parent=styles['Heading1'],
        alignment=TA_CENTER, fontSize=16, spaceAfter=4
    )
    center_style = ParagraphStyle('Center', parent=styles['Normal'], alignment=TA_CENTER)

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=letter,
        topMargin=0.5*inch, bottomMargin=0.5*inch,
        leftMargin=0.75*inch, rightMargin=0.75*inch
    )

    story = [
        Paragraph("Gradebook Report", title_style),
        Paragraph(f"Generated: {datetime.now().strftime('%m/%d/%Y')}", center_style),
        Spacer(1, 0.25*inch),
        Paragraph("<b>Statistics</b>", styles['Heading3']),
        Paragraph(f"Total Submissions: {len(rows)}", styles['Normal']),
        Paragraph("Average Grade: " + (f"{stats['average']}%" if stats['average'] is not None else "--"),
                  styles['Normal']),
        Spacer(1, 0.2*inch),
    ]

    table_data = [PDF_HEADERS]
    for row in rows:
        table_data.append([
            row['student_name'][:20],
            row['course_name'][:18],
            f"{row['score'] if row['score'] is not None else '-'}/{row['max_points']}",
            f"{row['percentage']}%",
            row['status'],
        ])

    table = Table(table_data, repeatRows=1)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), lightgrey),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('GRID', (0, 0), (-1, -1), 0.25, grey),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
    ]))
    story.append(table)

    doc.build(story)
    logger.info("Gradebook PDF generated (%d rows)", len(rows))
    return buffer.getvalue()
