"""Login form rendered at GET /auth/login and re-rendered on failed attempts."""

from typing import Optional

from .base import Component

ERROR_MESSAGES = {
    "missing_credentials": "Please enter your email and password.",
    "invalid_credentials": "Email or password is incorrect.",
    "auth_unreachable": "The sign-in service is not reachable. Please try again shortly.",
    "invalid_token": "Sign-in could not be verified. Please try again.",
    "no_profile": "Your account has no Markaz profile yet. Please contact the administrator.",
}


class LoginForm(Component):
    def __init__(self, error: Optional[str] = None, email: str = ""):
        self.error = error
        self.email = email

    def render(self) -> str:
        error_html = ""
        if self.error:
            message = ERROR_MESSAGES.get(self.error, "Sign-in failed. Please try again.")
            error_html = f'<div class="alert alert-error" role="alert">{self.escape(message)}</div>'
        return f"""
        <form method="post" action="/auth/login" class="login-form">
            {error_html}
            <label for="email">Email</label>
            <input id="email" name="email" type="email" autocomplete="username" required value="{self.escape(self.email)}">
            <label for="password">Password</label>
            <input id="password" name="password" type="password" autocomplete="current-password" required>
            <button type="submit" class="btn btn-primary">Sign in</button>
        </form>"""
