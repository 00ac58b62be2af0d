"""
Post body rendering: the action-item list built from a task file and the
field-merge reference table built from a profile import.
"""

from html import escape

from storecast.models.domain.distribution_domain import TaskSpecification

DEFAULT_BODY = "<p>Please review the details below.</p>"
SECTION_SEPARATOR = '<br><hr style="border:0; border-top:1px solid #eee; margin: 20px 0;">'
DUE_DATE_FORMAT = "%Y-%m-%d"


def render_task_list(tasks: list[TaskSpecification]) -> str:
    """Render tasks as an unordered list; empty string when there are none."""
    if not tasks:
        return ""

    items = []
    for task in tasks:
        item = f"<li><strong>{escape(task.title)}</strong>"
        if task.description:
            item += f": {escape(task.description)}"
        if task.due_date is not None:
            item += f" <em>(Due: {task.due_date.strftime(DUE_DATE_FORMAT)})</em>"
        items.append(item + "</li>")

    return "<h3>Action Items</h3><ul>" + "".join(items) + "</ul>"


def render_field_merge_table(headers: list[str], id_column: str, sample_row: dict[str, str]) -> str:
    """
    Reference table listing each imported profile attribute, its merge syntax
    and a sample value from the first data row.
    """
    rows = []
    for index, header in enumerate(headers):
        if header == id_column:
            continue
        background = "#ffffff" if index % 2 == 0 else "#f9f9f9"
        syntax = f"{{{{user.profile.{header}}}}}"
        value = sample_row.get(header) or "-"
        rows.append(
            f'<tr style="background-color:{background};">'
            f'<td style="padding:10px; border-bottom:1px solid #eee; color:#333;"><strong>{escape(header)}</strong></td>'
            f'<td style="padding:10px; border-bottom:1px solid #eee; font-family:monospace; color:#0056b3;">{escape(syntax)}</td>'
            f'<td style="padding:10px; border-bottom:1px solid #eee; color:#666;">{escape(value)}</td>'
            "</tr>"
        )

    if not rows:
        return ""

    return (
        '<div style="margin-top:20px; font-family: sans-serif;">'
        '<h3 style="margin-bottom:10px; color:#333;">Field Merge Reference</h3>'
        '<div style="overflow-x:auto; border:1px solid #eee; border-radius:6px;">'
        '<table style="width:100%; border-collapse:collapse; font-size:14px;">'
        '<thead><tr style="background-color:#f4f6f8; text-align:left;">'
        '<th style="padding:10px; border-bottom:2px solid #ddd; width:30%;">Attribute</th>'
        '<th style="padding:10px; border-bottom:2px solid #ddd; width:40%;">Syntax</th>'
        '<th style="padding:10px; border-bottom:2px solid #ddd; width:30%;">Sample Value</th>'
        "</tr></thead>"
        f"<tbody>{''.join(rows)}</tbody>"
        "</table></div></div>"
    )


def render_post_body(tasks: list[TaskSpecification], field_merge_table: str = "") -> str:
    body = render_task_list(tasks) or DEFAULT_BODY
    if field_merge_table:
        body += SECTION_SEPARATOR + field_merge_table
    return body
