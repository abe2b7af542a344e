"""HTML bodies for transactional email."""

from html import escape

_STYLE = """
    body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
    .container { max-width: 600px; margin: 0 auto; padding: 20px; }
    .header { background: #1da1f2; color: white; padding: 20px; text-align: center; }
    .content { padding: 20px; background: #f9f9f9; }
    .button { background: #1da1f2; color: white; padding: 12px 30px; text-decoration: none;
              border-radius: 5px; display: inline-block; margin: 20px 0; }
    .footer { text-align: center; padding: 20px; color: #666; font-size: 12px; }
"""


def _layout(title: str, heading: str, body: str, app_name: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
  <style>{_STYLE}</style>
</head>
<body>
  <div class="container">
    <div class="header"><h1>{heading}</h1></div>
    <div class="content">{body}</div>
    <div class="footer"><p>&copy; {escape(app_name)}. All rights reserved.</p></div>
  </div>
</body>
</html>
"""


def verification_email(app_name: str, username: str, url: str, ttl_hours: int) -> str:
    name, link = escape(username), escape(url, quote=True)
    body = f"""
      <h2>Hi {name}!</h2>
      <p>Thank you for signing up for {escape(app_name)}. To complete your registration,
         please verify your email address by clicking the button below:</p>
      <a href="{link}" class="button">Verify Email Address</a>
      <p>If the button doesn't work, copy and paste this link into your browser:</p>
      <p><a href="{link}">{link}</a></p>
      <p>This verification link will expire in {ttl_hours} hours.</p>
      <p>If you didn't create an account with {escape(app_name)}, you can safely ignore this email.</p>
    """
    return _layout(
        f"Verify Your {escape(app_name)} Account",
        f"Welcome to {escape(app_name)}!",
        body,
        app_name,
    )


def password_reset_email(app_name: str, username: str, url: str, ttl_hours: int) -> str:
    name, link = escape(username), escape(url, quote=True)
    unit = "hour" if ttl_hours == 1 else "hours"
    body = f"""
      <h2>Hi {name}!</h2>
      <p>We received a request to reset your {escape(app_name)} account password.
         Click the button below to reset your password:</p>
      <a href="{link}" class="button">Reset Password</a>
      <p>If the button doesn't work, copy and paste this link into your browser:</p>
      <p><a href="{link}">{link}</a></p>
      <p>This password reset link will expire in {ttl_hours} {unit}.</p>
      <p>If you didn't request a password reset, you can safely ignore this email.</p>
    """
    return _layout(
        f"Reset Your {escape(app_name)} Password",
        "Password Reset Request",
        body,
        app_name,
    )
