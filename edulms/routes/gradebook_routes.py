"""
Gradebook routes for EduLMS.
Filtered, sorted and paginated grade table with CSV and PDF downloads.
"""
import logging

from flask import Blueprint, Response, flash, redirect, render_template, request, url_for

from edulms.auth import current_user, login_required
from edulms.config import config
from edulms.errors import LMSError
from edulms.services import gradebook
from edulms.services.datastore import get_store
from edulms.utils import LETTER_RANGES, format_date, safe_int

gradebook_bp = Blueprint('gradebook', __name__)
logger = logging.getLogger(__name__)


def _filtered_rows():
    """Rows for the current user after the course/letter filters and sort in the query string."""
    rows = gradebook.load_rows(get_store(), current_user())
    courses = sorted({(r['course_id'], r['course_name']) for r in rows if r['course_id']}, key=lambda c: c[1])
    filtered = gradebook.apply_filters(rows, request.args.get('course') or None, request.args.get('grade') or None)
    return gradebook.sort_rows(filtered, request.args.get('sort', 'name')), courses


@gradebook_bp.route('/gradebook')
@login_required
def gradebook_page():
    try:
        rows, courses = _filtered_rows()
    except LMSError as e:
        logger.error("Error loading grades: %s", e)
        flash('Error loading grades', 'error')
        rows, courses = [], []

    page = gradebook.paginate(rows, safe_int(request.args.get('page'), default=1), config.page_size)
    for row in page['rows']:
        row['submitted_display'] = format_date(row['submitted_at'], with_time=False)
    return render_template(
        'gradebook.html',
        page=page,
        stats=gradebook.statistics(rows),
        courses=courses,
        letters=list(LETTER_RANGES),
        sort_options=gradebook.SORT_OPTIONS,
        args=request.args,
    )


@gradebook_bp.route('/gradebook/export.csv')
@login_required
def export_csv():
    try:
        rows, _ = _filtered_rows()
    except LMSError as e:
        flash(e.message, 'error')
        return redirect(url_for('gradebook.gradebook_page'))

    filename = gradebook.export_filename('csv')
    logger.info("Gradebook CSV exported by %s (%d rows)", current_user()['id'], len(rows))
    return Response(
        gradebook.export_csv(rows),
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={filename}'},
    )


@gradebook_bp.route('/gradebook/export.pdf')
@login_required
def export_pdf():
    try:
        rows, _ = _filtered_rows()
        pdf = gradebook.export_pdf(rows, gradebook.statistics(rows))
    except Exception as e:
        logger.error("Error exporting PDF: %s", e)
        flash('Error generating PDF', 'error')
        return redirect(url_for('gradebook.gradebook_page'))

    filename = gradebook.export_filename('pdf')
    return Response(
        pdf,
        mimetype='application/pdf',
        headers={'Content-Disposition': f'attachment; filename={filename}'},
    )
