"""
Server-rendered HTML for the no-script baseline.

Every page is a pure function of its arguments: the same job snapshot
always renders the same document.
"""

from html import escape

from job_relay.ops.jobs import Job, JobState


def status_url(job_id: str) -> str:
    return f"/jobs/{job_id}"


def events_url(job_id: str) -> str:
    return f"/jobs/{job_id}/events"


_LAYOUT = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
{head}<title>{title}</title>
</head>
<body>
<main>
<h1>{title}</h1>
{body}
</main>
</body>
</html>
"""


def _page(title: str, body: str, head: str = "") -> str:
    return _LAYOUT.format(title=escape(title), body=body, head=head)


def render_form(error: str = "") -> str:
    """Submission form; posts without any client scripting."""
    notice = f'<p role="alert">{escape(error)}</p>\n' if error else ""
    body = (
        f"{notice}"
        '<form method="post" action="/jobs">\n'
        '<label for="prompt">Prompt</label>\n'
        '<textarea id="prompt" name="prompt" rows="6" required></textarea>\n'
        '<button type="submit">Submit</button>\n'
        "</form>"
    )
    return _page("Ask a question", body)


def render_status(job: Job, refresh_seconds: int = 5) -> str:
    """
    Full status document for one job.

    Non-terminal jobs carry a refresh instruction and a manual refresh link
    so the page advances without scripting.
    """
    url = status_url(job.id)
    head = ""

    if job.status is JobState.COMPLETE:
        text = (job.result or {}).get("text", "")
        body = (
            '<p role="status" data-status="complete">Your request is complete.</p>\n'
            f'<section aria-label="Result"><pre>{escape(str(text))}</pre></section>\n'
            '<p><a href="/">Submit another request</a></p>'
        )
    elif job.status is JobState.FAILED:
        body = (
            '<p role="alert" data-status="failed">Your request could not be completed.</p>\n'
            f"<p>{escape(job.error or 'Unknown error')}</p>\n"
            '<p><a href="/">Try again</a></p>'
        )
    else:
        label = "waiting in the queue" if job.status is JobState.QUEUED else "being processed"
        head = f'<meta http-equiv="refresh" content="{int(refresh_seconds)};url={url}">\n'
        body = (
            f'<p role="status" aria-busy="true" data-status="{job.status.value}">'
            f"Your request is {label}.</p>\n"
            f"<p>This page refreshes every {int(refresh_seconds)} seconds. "
            f'<a href="{url}">Refresh now</a></p>'
        )

    body += f"\n<p><small>Job reference: {escape(job.id)}</small></p>"
    return _page("Request status", body, head=head)


def render_not_found(job_id: str) -> str:
    body = (
        f"<p>No request with reference {escape(job_id)} was found.</p>\n"
        '<p><a href="/">Submit a new request</a></p>'
    )
    return _page("Request not found", body)


def render_unavailable(message: str) -> str:
    body = (
        '<p role="alert">We could not accept your request right now. '
        "Nothing was submitted; please try again in a moment.</p>\n"
        f"<p><small>{escape(message)}</small></p>\n"
        '<p><a href="/">Back to the form</a></p>'
    )
    return _page("Service busy", body)
