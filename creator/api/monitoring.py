"""
Creator API – Timing-compliance monitoring and export endpoints.
"""
import re
from datetime import datetime
from io import BytesIO

from django.contrib.auth.decorators import login_required
from django.http import HttpResponse, JsonResponse
from django.views.decorators.http import require_GET

from core.services.monitoring import monitoring_snapshot
from core.utils.audit import log_action
from core.utils.http import api_view_errors, date_param, int_param

STATUS_LABELS = {
    'not_started': 'Not Started',
    'started_on_time': 'On Time',
    'started_late': 'Started Late',
    'ended_on_time': 'Ended On Time',
    'ended_late': 'Ended Late',
    'cancelled': 'Cancelled',
}


def _safe_filename(name: str) -> str:
    """Sanitize a string for safe use in Content-Disposition headers."""
    return re.sub(r'[^\w\-.]', '_', name)


def _scope(request):
    return (
        int_param(request, 'exam_year_id', required=True),
        date_param(request, 'exam_date'),
    )


@login_required
@require_GET
@api_view_errors
def get_monitoring(request):
    """GET /api/creator/exam-scheduling/monitoring?exam_year_id=&exam_date="""
    exam_year_id, exam_date = _scope(request)
    return JsonResponse(monitoring_snapshot(exam_year_id, exam_date=exam_date))


def _delay_text(row):
    parts = []
    if row['started_late']:
        parts.append(f"+{row['late_start_minutes']} min")
    if row['ended_late']:
        parts.append(f"+{row['late_end_minutes']} min (end)")
    return ' / '.join(parts)


@login_required
@require_GET
@api_view_errors
def export_monitoring_xlsx(request):
    """GET /api/creator/exam-scheduling/monitoring/xlsx?exam_year_id=&exam_date="""
    from openpyxl import Workbook
    from openpyxl.styles import Alignment, Font, PatternFill

    exam_year_id, exam_date = _scope(request)
    report = monitoring_snapshot(exam_year_id, exam_date=exam_date)
    scope = report['scope']

    wb = Workbook()
    ws = wb.active
    ws.title = 'Session Monitoring'

    header_fill = PatternFill(start_color='4472C4', end_color='4472C4', fill_type='solid')
    header_font = Font(bold=True, color='FFFFFF', size=11)
    late_fill = PatternFill(start_color='FFC7CE', end_color='FFC7CE', fill_type='solid')

    headers = [
        'Exam Date', 'Center', 'Subject', 'Grade', 'Scheduled Start', 'Scheduled End',
        'Actual Start', 'Actual End', 'Candidates', 'Status', 'Delay', 'Reason', 'Reason Details',
    ]
    last_col_letter = chr(64 + len(headers))

    ws.merge_cells(f'A1:{last_col_letter}1')
    title = f"{scope['exam_year']} - Session Monitoring"
    if scope['exam_date']:
        title += f" ({scope['exam_date']})"
    ws['A1'] = title
    ws['A1'].font = Font(bold=True, size=14)
    ws['A1'].alignment = Alignment(horizontal='center')

    ws.merge_cells(f'A2:{last_col_letter}2')
    ws['A2'] = f"Generated on: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"
    ws['A2'].alignment = Alignment(horizontal='center')

    summary = report['summary']
    ws['A3'] = (
        f"Total {summary['total']} | On time {summary['onTime']} | "
        f"Late start {summary['lateStart']} | Late end {summary['lateEnd']} | "
        f"In progress {summary['inProgress']} | Not started {summary['notStarted']} | "
        f"Cancelled {summary['cancelled']}"
    )

    for col_num, header in enumerate(headers, 1):
        cell = ws.cell(row=5, column=col_num)
        cell.value = header
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal='center', vertical='center')

    row_num = 6
    for row in report['sessions']:
        values = [
            row['exam_date'],
            row['center']['name'] if row['center'] else '',
            row['subject']['name'] or '',
            row['grade'],
            row['scheduled_start_time'],
            row['scheduled_end_time'],
            row['actual_start_time'] or '',
            row['actual_end_time'] or '',
            row['candidate_count'] if row['candidate_count'] is not None else '',
            STATUS_LABELS.get(row['status'], row['status']),
            _delay_text(row),
            row['late_start_reason_label'] or '',
            row['late_start_reason_details'] or '',
        ]
        for col_idx, value in enumerate(values, 1):
            cell = ws.cell(row=row_num, column=col_idx)
            cell.value = value
            cell.alignment = Alignment(horizontal='left', vertical='top', wrap_text=True)
        if row['started_late'] or row['ended_late']:
            ws.cell(row=row_num, column=10).fill = late_fill
        row_num += 1

    for col_idx in range(1, len(headers) + 1):
        ws.column_dimensions[chr(64 + col_idx)].width = 18

    buffer = BytesIO()
    wb.save(buffer)

    log_action(request, 'EXPORT', 'ExamSession', '',
               f"Exported monitoring for {scope['exam_year']}",
               extra_data={'exam_year_id': exam_year_id, 'exam_date': scope['exam_date']})

    filename = _safe_filename(f"monitoring_{scope['exam_year']}_{scope['exam_date'] or 'all'}.xlsx")
    response = HttpResponse(
        buffer.getvalue(),
        content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    )
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response
