"""
Email templates for AI Academy notifications.

All templates use inline CSS for email client compatibility. Every
interpolated value passes through ``html.escape`` before it reaches markup.

Each template function returns (subject, html_body, text_body).
"""

from __future__ import annotations

from collections.abc import Sequence
from html import escape
from typing import Any

# Color constants
BG_PAGE = "#F4F4F5"
BG_CARD = "#FFFFFF"
ACCENT = "#2563EB"
TEXT_PRIMARY = "#111827"
TEXT_SECONDARY = "#4B5563"
BORDER = "#E5E7EB"
URGENT = "#DC2626"
WARNING = "#F59E0B"

APP_NAME = "AI Academy"


def _base_layout(content: str, title: str = APP_NAME) -> str:
    """Wrap content in the base email layout."""
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{escape(title)}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {BG_PAGE}; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color: {BG_PAGE};">
        <tr>
            <td align="center" style="padding: 40px 20px;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="600" style="max-width: 600px; width: 100%;">
                    <tr>
                        <td style="background-color: {BG_CARD}; border: 1px solid {BORDER}; border-radius: 12px; padding: 40px 32px;">
                            {content}
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="padding-top: 24px;">
                            <p style="color: {TEXT_SECONDARY}; font-size: 12px; line-height: 1.5; margin: 0;">
                                You are receiving this because you are enrolled in {APP_NAME}.
                            </p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""


def _button(url: str, label: str) -> str:
    """Render a CTA button."""
    return f"""\
<table role="presentation" cellspacing="0" cellpadding="0" border="0" style="margin: 28px auto;">
    <tr>
        <td align="center" style="background-color: {ACCENT}; border-radius: 8px;">
            <a href="{escape(url, quote=True)}" target="_blank" style="display: inline-block; padding: 14px 32px; color: #FFFFFF; font-size: 16px; font-weight: 600; text-decoration: none;">
                {escape(label)}
            </a>
        </td>
    </tr>
</table>"""


def _heading(text: str) -> str:
    return f'<h1 style="color: {TEXT_PRIMARY}; font-size: 22px; font-weight: 700; margin: 0 0 16px 0;">{escape(text)}</h1>'


def _paragraph(text: str) -> str:
    return f'<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 12px 0;">{escape(text)}</p>'


def _quote(text: str) -> str:
    return (
        f'<blockquote style="border-left: 4px solid {ACCENT}; margin: 16px 0; padding: 8px 16px; '
        f'color: {TEXT_PRIMARY}; white-space: pre-wrap;">{escape(text)}</blockquote>'
    )


def stars(rating: int) -> str:
    rating = max(0, min(5, rating))
    return "★" * rating + "☆" * (5 - rating)


def _excerpt(text: str, limit: int = 200) -> str:
    return text if len(text) <= limit else text[: limit - 3].rstrip() + "..."


def review_notification(
    participant_name: str,
    assignment_title: str,
    mentor_rating: int,
    app_url: str,
    mentor_notes: str | None = None,
) -> tuple[str, str, str]:
    """
    Sent when a mentor rates a submission.

    Returns:
        (subject, html_body, text_body)
    """
    dashboard_url = f"{app_url}/my-dashboard"
    subject = f"Your submission was reviewed: {assignment_title}"
    parts = [
        _heading("Your submission has been reviewed"),
        _paragraph(f"Hi {participant_name},"),
        _paragraph(f"A mentor reviewed “{assignment_title}”."),
        f'<p style="color: {WARNING}; font-size: 28px; margin: 8px 0 16px 0;">{stars(mentor_rating)}</p>',
    ]
    if mentor_notes:
        parts.append(_quote(mentor_notes))
    parts.append(_button(dashboard_url, "Open dashboard"))
    html_body = _base_layout("\n".join(parts), subject)

    text_body = (
        f"Hi {participant_name},\n\n"
        f"A mentor reviewed \"{assignment_title}\".\n"
        f"Rating: {mentor_rating}/5\n"
        + (f"\nNotes:\n{mentor_notes}\n" if mentor_notes else "")
        + f"\nSee it on your dashboard: {dashboard_url}\n"
    )
    return subject, html_body, text_body


def achievement_notification(
    participant_name: str,
    achievement_name: str,
    achievement_icon: str,
    bonus_points: int,
    app_url: str,
    achievement_description: str | None = None,
) -> tuple[str, str, str]:
    """
    Sent when an achievement is unlocked.

    Returns:
        (subject, html_body, text_body)
    """
    dashboard_url = f"{app_url}/my-progress"
    subject = f"Achievement unlocked: {achievement_name}!"
    parts = [
        f'<p style="font-size: 48px; text-align: center; margin: 0 0 8px 0;">{escape(achievement_icon)}</p>',
        _heading(f"{achievement_name} unlocked"),
        _paragraph(f"Congratulations {participant_name}!"),
    ]
    if achievement_description:
        parts.append(_paragraph(achievement_description))
    if bonus_points:
        parts.append(_paragraph(f"+{bonus_points} bonus points were added to your score."))
    parts.append(_button(dashboard_url, "View your progress"))
    html_body = _base_layout("\n".join(parts), subject)

    text_body = (
        f"Congratulations {participant_name}!\n\n"
        f"You unlocked the {achievement_name} achievement.\n"
        + (f"{achievement_description}\n" if achievement_description else "")
        + (f"+{bonus_points} bonus points\n" if bonus_points else "")
        + f"\n{dashboard_url}\n"
    )
    return subject, html_body, text_body


def level_up_notification(
    participant_name: str,
    new_level: int,
    new_clearance: str,
    app_url: str,
) -> tuple[str, str, str]:
    """
    Sent by the mastery job when a participant reaches a new clearance.

    Returns:
        (subject, html_body, text_body)
    """
    dashboard_url = f"{app_url}/my-progress"
    clearance_label = new_clearance.replace("_", " ").title()
    subject = f"Clearance upgraded: {clearance_label}"
    content = "\n".join(
        [
            _heading(f"Level {new_level}: {clearance_label}"),
            _paragraph(f"Well done {participant_name}, your mastery level increased to {new_level}."),
            _button(dashboard_url, "See your progress"),
        ]
    )
    html_body = _base_layout(content, subject)
    text_body = (
        f"Well done {participant_name}!\n\n"
        f"Your mastery level is now {new_level} ({clearance_label}).\n\n"
        f"{dashboard_url}\n"
    )
    return subject, html_body, text_body


def _format_remaining(hours: int) -> str:
    return f"{hours}h" if hours < 24 else f"{round(hours / 24)}d"


def deadline_reminder(
    participant_name: str,
    assignments: Sequence[dict[str, Any]],
    app_url: str,
) -> tuple[str, str, str]:
    """
    Upcoming-deadline digest.

    ``assignments`` items carry ``title``, ``day``, ``type`` and ``hours_remaining``.

    Returns:
        (subject, html_body, text_body)
    """
    dashboard_url = f"{app_url}/my-dashboard"
    subject = f"Reminder: {len(assignments)} assignment(s) due soon"
    rows = []
    text_lines = []
    for item in assignments:
        hours = int(item["hours_remaining"])
        color = URGENT if hours < 24 else WARNING
        kind = "In-Class" if item.get("type") == "in_class" else "Homework"
        rows.append(
            f"""\
<tr>
    <td style="padding: 12px; border-bottom: 1px solid {BORDER};">
        <strong>Day {int(item["day"])}: {escape(str(item["title"]))}</strong><br>
        <span style="color: {TEXT_SECONDARY}; font-size: 13px;">{kind}</span>
    </td>
    <td style="padding: 12px; border-bottom: 1px solid {BORDER}; text-align: right; color: {color}; font-weight: 600;">
        {_format_remaining(hours)}
    </td>
</tr>"""
        )
        text_lines.append(f"- Day {item['day']}: {item['title']} ({kind}), {_format_remaining(hours)} left")

    content = "\n".join(
        [
            _heading("Deadlines coming up"),
            _paragraph(f"Hi {participant_name}, these assignments are still missing:"),
            f'<table role="presentation" width="100%" cellspacing="0" cellpadding="0">{"".join(rows)}</table>',
            _button(dashboard_url, "Submit now"),
        ]
    )
    html_body = _base_layout(content, subject)
    text_body = f"Hi {participant_name},\n\nThese assignments are due soon:\n" + "\n".join(text_lines) + f"\n\n{dashboard_url}\n"
    return subject, html_body, text_body


def mention_notification(
    recipient_name: str,
    author_name: str,
    comment_content: str,
    submission_id: str,
    app_url: str,
) -> tuple[str, str, str]:
    """
    Sent to participants @mentioned in a comment.

    Returns:
        (subject, html_body, text_body)
    """
    link = f"{app_url}/submissions/{submission_id}"
    subject = f"{author_name} mentioned you in a comment"
    excerpt = _excerpt(comment_content)
    content = "\n".join(
        [
            _heading("You were mentioned"),
            _paragraph(f"Hi {recipient_name}, {author_name} mentioned you:"),
            _quote(excerpt),
            _button(link, "View discussion"),
        ]
    )
    html_body = _base_layout(content, subject)
    text_body = f"Hi {recipient_name},\n\n{author_name} mentioned you:\n\n{excerpt}\n\n{link}\n"
    return subject, html_body, text_body


def reply_notification(
    recipient_name: str,
    author_name: str,
    comment_content: str,
    submission_id: str,
    app_url: str,
) -> tuple[str, str, str]:
    """
    Sent to a comment's author when someone replies.

    Returns:
        (subject, html_body, text_body)
    """
    link = f"{app_url}/submissions/{submission_id}"
    subject = f"{author_name} replied to your comment"
    excerpt = _excerpt(comment_content)
    content = "\n".join(
        [
            _heading("New reply"),
            _paragraph(f"Hi {recipient_name}, {author_name} replied to your comment:"),
            _quote(excerpt),
            _button(link, "View reply"),
        ]
    )
    html_body = _base_layout(content, subject)
    text_body = f"Hi {recipient_name},\n\n{author_name} replied:\n\n{excerpt}\n\n{link}\n"
    return subject, html_body, text_body


def intel_drop_notification(
    participant_name: str,
    title: str,
    classification: str,
    day: int,
    content: str,
    app_url: str,
) -> tuple[str, str, str]:
    """
    Sent when an intel drop is released.

    Returns:
        (subject, html_body, text_body)
    """
    link = f"{app_url}/intel"
    subject = f"[{classification}] Intel drop: {title}"
    color = URGENT if classification in ("URGENT", "CLASSIFIED") else ACCENT
    excerpt = _excerpt(content, 300)
    body = "\n".join(
        [
            f'<p style="color: {color}; font-size: 12px; font-weight: 700; letter-spacing: 2px; margin: 0 0 8px 0;">'
            f"{escape(classification)} / DAY {int(day)}</p>",
            _heading(title),
            _paragraph(f"Agent {participant_name}, new intel is available."),
            _quote(excerpt),
            _button(link, "Read full briefing"),
        ]
    )
    html_body = _base_layout(body, subject)
    text_body = f"[{classification}] Day {day}: {title}\n\n{excerpt}\n\n{link}\n"
    return subject, html_body, text_body
