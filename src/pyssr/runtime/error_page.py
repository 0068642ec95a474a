import html
from typing import Mapping, Optional

from starlette.responses import HTMLResponse


def build_error_page(error_title: str, error_detail: str, headers: Optional[Mapping[str, str]] = None) -> HTMLResponse:
    """Render the page shown in development when the server bundle fails to build."""
    escaped_detail = html.escape(error_detail)
    content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <title>pyssr: {html.escape(error_title)}</title>
        <style>
            body {{
                font-family: system-ui, -apple-system, sans-serif;
                padding: 2rem;
                background: #fff0f0;
                color: #333;
            }}
            .error-container {{
                max-width: 900px;
                margin: 0 auto;
                background: white;
                padding: 2rem;
                border-radius: 8px;
                border-left: 6px solid #ff4444;
            }}
            h1 {{
                margin-top: 0;
                color: #cc0000;
            }}
            pre {{
                background: #f8f8f8;
                padding: 1rem;
                overflow-x: auto;
                font-size: 14px;
                white-space: pre-wrap;
            }}
        </style>
    </head>
    <body>
        <div class="error-container">
            <h1>{html.escape(error_title)}</h1>
            <pre>{escaped_detail}</pre>
            <p>The page will render again once the bundle builds.</p>
        </div>
    </body>
    </html>
    """
    return HTMLResponse(content, status_code=500, headers=headers)
