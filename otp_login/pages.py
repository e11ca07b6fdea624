"""
Server-rendered pages.

Every page is an inline HTML template wrapped in the shared layout. All
values that come from the request, the provider or the database go
through ``escape`` before they are interpolated.
"""

import json
from html import escape
from typing import List, Mapping, Optional, Sequence, Tuple

from fastapi.responses import HTMLResponse

from otp_login.models import UserProfile

TITLE_PREFIX = "FastAPI+Stytch"

Breadcrumb = Tuple[str, str]


# =============================================================================
# Layout
# =============================================================================

def _layout(title: str, body: str, status_code: int = 200) -> HTMLResponse:
    html_content = f"""
    <!DOCTYPE html>
    <html lang="en">
    <head>
        <meta charset="UTF-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
        <title>{TITLE_PREFIX} :: {escape(title)}</title>
        <style>
            * {{ margin: 0; padding: 0; box-sizing: border-box; }}
            body {{
                font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Helvetica, Arial, sans-serif;
                background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
                min-height: 100vh;
                display: flex;
                align-items: center;
                justify-content: center;
                padding: 20px;
            }}
            .container {{
                background: white;
                border-radius: 12px;
                padding: 40px;
                max-width: 560px;
                width: 100%;
                box-shadow: 0 10px 40px rgba(0,0,0,0.2);
            }}
            .breadcrumbs {{
                font-size: 13px;
                color: #9ca3af;
                margin-bottom: 20px;
            }}
            .breadcrumbs a {{ color: #667eea; text-decoration: none; }}
            h1 {{
                color: #1f2937;
                font-size: 24px;
                margin-bottom: 16px;
            }}
            p {{
                color: #4b5563;
                font-size: 15px;
                line-height: 1.6;
                margin-bottom: 16px;
            }}
            label {{
                display: block;
                color: #374151;
                font-size: 14px;
                font-weight: 600;
                margin-bottom: 6px;
            }}
            input, select {{
                width: 100%;
                padding: 10px 12px;
                border: 1px solid #d1d5db;
                border-radius: 8px;
                font-size: 15px;
                margin-bottom: 8px;
            }}
            input.invalid {{ border-color: #ef4444; }}
            .field-error {{
                color: #dc2626;
                font-size: 13px;
                margin-bottom: 12px;
            }}
            .banner {{
                background: #ecfdf5;
                color: #065f46;
                padding: 12px 16px;
                border-radius: 8px;
                margin-bottom: 16px;
            }}
            .button {{
                display: inline-block;
                background: #667eea;
                color: white;
                padding: 12px 28px;
                border: none;
                border-radius: 8px;
                text-decoration: none;
                font-weight: 600;
                font-size: 15px;
                cursor: pointer;
                margin-top: 8px;
            }}
            .button:hover {{ background: #5568d3; }}
            .secondary {{
                display: block;
                margin-top: 20px;
                color: #667eea;
                font-size: 14px;
                text-decoration: none;
            }}
            pre {{
                background: #f3f4f6;
                border-radius: 8px;
                padding: 16px;
                font-size: 13px;
                overflow-x: auto;
                margin-bottom: 16px;
            }}
            .error-icon {{
                width: 64px;
                height: 64px;
                background: #ef4444;
                border-radius: 50%;
                color: white;
                font-size: 40px;
                font-weight: bold;
                display: flex;
                align-items: center;
                justify-content: center;
                margin: 0 auto 20px;
            }}
        </style>
    </head>
    <body>
        <div class="container">
            {body}
        </div>
    </body>
    </html>
    """
    return HTMLResponse(content=html_content, status_code=status_code)


def _breadcrumbs(items: List[Breadcrumb]) -> str:
    links = " / ".join(
        f'<a href="{escape(href)}">{escape(label)}</a>' for href, label in items
    )
    return f'<nav class="breadcrumbs">{links}</nav>'


def _field(
    name: str,
    label: str,
    errors: Mapping[str, str],
    value: str = "",
    input_type: str = "text",
    placeholder: str = "",
    input_mode: str = "text",
) -> str:
    error = errors.get(name)
    css_class = ' class="invalid"' if error else ""
    error_html = (
        f'<p class="field-error" id="{name}-error">{escape(error)}</p>' if error else ""
    )
    return f"""
        <label for="{name}">{escape(label)}</label>
        <input id="{name}" name="{name}" type="{input_type}" inputmode="{input_mode}"
               autocapitalize="off" autocorrect="off" spellcheck="false"
               aria-describedby="{name}-error" placeholder="{escape(placeholder)}"
               value="{escape(value)}"{css_class}>
        {error_html}
    """


LOGIN_CRUMB = ("/login", "Login method selection")


# =============================================================================
# Pages
# =============================================================================

def render_home() -> HTMLResponse:
    body = """
        <h1>Passwordless login demo</h1>
        <p>
            This example app shows how to use
            <a href="https://stytch.com" target="_blank" rel="noreferrer">Stytch</a>
            with <a href="https://fastapi.tiangolo.com" target="_blank" rel="noreferrer">FastAPI</a>.
            You can use One-Time Passcodes, sent via email or SMS, to log in to this
            app and see the profile page.
        </p>
        <a href="/login" class="button">Login</a>
    """
    return _layout("Home", body)


def render_login_method() -> HTMLResponse:
    body = f"""
        {_breadcrumbs([LOGIN_CRUMB])}
        <h1>How would you like to log in?</h1>
        <a href="/login/sms" class="button">Continue using SMS</a>
        <a href="/login/email" class="button">Continue using Email</a>
    """
    return _layout("Login Method", body)


def render_email_form(
    errors: Optional[Mapping[str, str]] = None,
    email: str = "",
) -> HTMLResponse:
    errors = errors or {}
    email_field = _field(
        "email", "Email Address", errors, value=email, input_type="email",
        placeholder="example@email.com", input_mode="email",
    )
    body = f"""
        {_breadcrumbs([LOGIN_CRUMB, ("/login/email", "Email")])}
        <h1>Login via email</h1>
        <p>We'll send a one-time passcode to your email address.</p>
        <form method="post" action="/login/email">
            {email_field}
            <button type="submit" class="button">Send code</button>
        </form>
        <a href="/login/sms" class="secondary">Or switch from email to SMS</a>
    """
    return _layout("Login via Email", body)


def render_sms_form(
    errors: Optional[Mapping[str, str]] = None,
    country: str = "US",
    phone: str = "",
    countries: Sequence[str] = ("US",),
) -> HTMLResponse:
    errors = errors or {}
    options = "".join(
        f'<option{" selected" if code == country else ""}>{code}</option>'
        for code in countries
    )
    country_error = errors.get("country")
    country_error_html = (
        f'<p class="field-error" id="country-error">{escape(country_error)}</p>'
        if country_error else ""
    )
    phone_field = _field(
        "phone", "Phone Number", errors, value=phone, input_type="tel",
        placeholder="(555) 987-6543", input_mode="tel",
    )
    body = f"""
        {_breadcrumbs([LOGIN_CRUMB, ("/login/sms", "SMS")])}
        <h1>Login via SMS</h1>
        <p>We'll text a one-time passcode to your phone.</p>
        <form method="post" action="/login/sms">
            <label for="country">Country</label>
            <select id="country" name="country" autocomplete="country">{options}</select>
            {country_error_html}
            {phone_field}
            <button type="submit" class="button">Send code</button>
        </form>
        <a href="/login/email" class="secondary">Or switch from SMS to email</a>
    """
    return _layout("Login via SMS", body)


def render_otp_form(
    method_id: str,
    user_created: bool,
    method_name: Optional[str] = None,
    verification_target: Optional[str] = None,
    action: str = "/login/otp",
    errors: Optional[Mapping[str, str]] = None,
) -> HTMLResponse:
    errors = errors or {}
    method_crumb = ("/login/sms", "SMS") if method_name == "sms" else ("/login/email", "Email")
    target_html = (
        f"<p>Enter the 6-digit code sent to <strong>{escape(verification_target)}</strong>.</p>"
        if verification_target else "<p>Enter the 6-digit code we sent you.</p>"
    )
    code_field = _field(
        "code", "6-Digit Code", errors, placeholder="6-Digit Code", input_mode="numeric",
    )
    hidden_user_created = "1" if user_created else "0"
    body = f"""
        {_breadcrumbs([LOGIN_CRUMB, method_crumb, ("/login/otp", "Verify")])}
        <h1>Verify your code</h1>
        {target_html}
        <form method="post" action="{escape(action)}">
            <input type="hidden" name="methodId" value="{escape(method_id)}">
            <input type="hidden" name="userCreated" value="{hidden_user_created}">
            {code_field}
            <button type="submit" class="button">Verify</button>
        </form>
        <a href="{method_crumb[0]}" class="secondary">Resend your verification code</a>
    """
    return _layout("Verify OTP", body)


def render_profile(user: UserProfile, user_created: bool = False) -> HTMLResponse:
    banner = (
        '<div class="banner">Welcome! Your account has been created.</div>'
        if user_created else ""
    )
    user_json = json.dumps(user.model_dump(), indent=2)
    body = f"""
        {banner}
        <h1>Profile</h1>
        <p>You are logged in. This is the user record assembled from the local
        database and the authentication provider:</p>
        <pre><code>{escape(user_json)}</code></pre>
        <a href="/logout" class="button">Logout</a>
    """
    return _layout("Profile", body)


def render_error_page(
    title: str,
    message: str,
    status_code: int = 400,
    retry_url: Optional[str] = "/login",
) -> HTMLResponse:
    retry_button = (
        f'<a href="{escape(retry_url)}" class="button">Try Again</a>' if retry_url else ""
    )
    body = f"""
        <div class="error-icon">!</div>
        <h1>{escape(title)}</h1>
        <p>{escape(message)}</p>
        {retry_button}
    """
    return _layout(title, body, status_code=status_code)


__all__ = [
    "render_home",
    "render_login_method",
    "render_email_form",
    "render_sms_form",
    "render_otp_form",
    "render_profile",
    "render_error_page",
]

