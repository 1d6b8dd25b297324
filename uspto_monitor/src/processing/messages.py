"""Subjects and HTML bodies for the notification emails."""

from datetime import datetime, timezone
from html import escape
from typing import Tuple

from ..config import Config
from ..models import Document, FilingType, Matter, RunReport


def new_document_message(matter: Matter, document: Document) -> Tuple[str, str]:
    link = document.best_link
    rows = [
        f"<li><strong>Document Date:</strong> {document.date_key}</li>",
        f"<li><strong>Document Type:</strong> {escape(document.description)}</li>",
    ]
    if matter.type == FilingType.PATENT:
        rows.append(f"<li><strong>Document Code:</strong> {escape(document.document_code)}</li>")
        rows.append(f"<li><strong>Category:</strong> {escape(document.category)}</li>")
    if link != "N/A":
        rows.append(f'<li><strong>Document Link:</strong> <a href="{escape(link)}">View Document</a></li>')
    else:
        rows.append("<li><strong>Document Link:</strong> No Link Available</li>")
    if document.drive_link:
        rows.append("<li><strong>Storage:</strong> Google Drive</li>")

    subject = f"New {document.description} for {matter.type.value} #{matter.application_number}"
    body = (
        "<div style=\"font-family: Arial, sans-serif;\">"
        "<h2>New USPTO Document Found</h2>"
        f"<h3>{matter.type.value} Application: <strong>{escape(matter.application_number)}</strong></h3>"
        f"<ul>{''.join(rows)}</ul>"
        f"<p>Automated update from the {Config.API_TITLE}.</p>"
        "</div>"
    )
    return subject, body


def summary_message(report: RunReport) -> Tuple[str, str]:
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    updated = report.updated_results
    if updated:
        table_rows = "".join(
            "<tr>"
            f"<td>{index}</td>"
            f"<td><strong>{escape(r.application_number or '')}</strong></td>"
            f"<td>{r.type.value if r.type else ''}</td>"
            f"<td>{r.latest_doc_date or ''}</td>"
            f"<td>{r.doc_count}</td>"
            f"<td>{escape(r.description or '')}</td>"
            "</tr>"
            for index, r in enumerate(updated, start=1)
        )
        matters_section = (
            f"<h3>Updated Matters ({len(updated)}):</h3>"
            "<table border=\"1\" cellpadding=\"6\" style=\"border-collapse: collapse;\">"
            "<tr><th>#</th><th>Application Number</th><th>Type</th>"
            "<th>Latest Date</th><th>Documents</th><th>Description</th></tr>"
            f"{table_rows}</table>"
        )
    else:
        matters_section = (
            "<h3>All Matters Up to Date</h3>"
            "<p>No new documents found for any matters since last check.</p>"
        )

    failed = [r for r in report.results if not r.success and not r.rejected]
    failed_section = ""
    if failed:
        items = "".join(
            f"<li>{escape(r.application_number or r.lawmatics_id)}: {escape(r.message)}</li>" for r in failed
        )
        failed_section = f"<h3>Failed Matters ({len(failed)}):</h3><ul>{items}</ul>"

    subject = f"USPTO Monitor Summary - {stamp}"
    body = (
        "<div style=\"font-family: Arial, sans-serif;\">"
        "<h1>USPTO Monitoring Summary</h1>"
        f"<p>{stamp}</p>"
        f"<p><strong>Total Matters:</strong> {report.total} | "
        f"<strong>Updated:</strong> {report.updated} | "
        f"<strong>Documents:</strong> {report.documents}</p>"
        f"{matters_section}{failed_section}"
        f"<p>Checks run every {Config.SCHEDULE_MINUTES} minutes while the scheduler is enabled.</p>"
        "</div>"
    )
    return subject, body


def no_updates_message(matter_count: int) -> Tuple[str, str]:
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    subject = f"USPTO Check Complete - No New Documents ({matter_count} matters)"
    body = (
        "<div style=\"font-family: Arial, sans-serif;\">"
        "<h2>USPTO Check Complete</h2>"
        f"<p>Checked {matter_count} matter(s) at {stamp}. No new documents were found.</p>"
        "</div>"
    )
    return subject, body
