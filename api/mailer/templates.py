"""
HTML email templates.

Every user-supplied value is escaped before it is placed in markup. Each
builder returns `(subject, html)`.
"""

from __future__ import annotations

import html
from dataclasses import dataclass
from datetime import datetime, timezone

BRAND = "Dubai Wealth Hub"

NOTIFICATION_CTA_TEXTS = {
    "message": "View Message",
    "connection_request": "View Request",
    "connection_accepted": "View Profile",
    "post_comment": "View Comment",
    "event_new": "View Event",
    "event_reminder": "View Event",
    "announcement": "Learn More",
}
DEFAULT_CTA_TEXT = "View Details"

NOTIFICATION_SUBJECT_PREFIXES = {
    "message": "💬 ",
    "connection_request": "🤝 ",
    "connection_accepted": "✅ ",
    "post_comment": "💬 ",
    "event_new": "📅 ",
    "event_reminder": "⏰ ",
    "announcement": "📢 ",
}


def escape(value: object) -> str:
    return html.escape(str(value if value is not None else ""), quote=True)


def first_name(full_name: str | None, default: str = "Investor") -> str:
    parts = (full_name or "").split()
    return parts[0] if parts else default


def _button(url: str, text: str) -> str:
    return (
        '<table cellpadding="0" cellspacing="0"><tr>'
        '<td style="background:#CBB89E;border-radius:8px;">'
        f'<a href="{escape(url)}" style="display:inline-block;padding:14px 28px;color:#0A0F1D;'
        f'text-decoration:none;font-weight:600;font-size:14px;">{escape(text)}</a>'
        "</td></tr></table>"
    )


def layout(content: str, base_url: str, *, footer_note: str | None = None) -> str:
    year = datetime.now(timezone.utc).year
    note = footer_note or "Questions? Reply to this email, we're here to help."
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="margin:0;padding:0;background-color:#0A0F1D;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,Arial,sans-serif;">
  <table width="100%" cellpadding="0" cellspacing="0" style="padding:40px 20px;">
    <tr><td align="center">
      <table width="600" cellpadding="0" cellspacing="0" style="max-width:600px;background-color:#101010;border-radius:16px;">
        <tr><td style="padding:32px 40px;text-align:center;border-bottom:1px solid rgba(203,184,158,0.2);">
          <h1 style="margin:0;font-size:26px;font-weight:300;color:#CBB89E;letter-spacing:2px;">{BRAND}</h1>
        </td></tr>
        <tr><td style="padding:40px;color:#EAE8E3;">{content}</td></tr>
        <tr><td style="padding:24px 40px;border-top:1px solid rgba(203,184,158,0.2);text-align:center;">
          <p style="margin:0 0 10px;font-size:14px;color:#EAE8E3;">{escape(note)}</p>
          <p style="margin:0 0 10px;font-size:12px;color:#888;">
            <a href="{escape(base_url)}/settings" style="color:#CBB89E;">Manage email preferences</a>
          </p>
          <p style="margin:0;font-size:12px;color:#888;">&copy; {year} {BRAND}. All rights reserved.</p>
        </td></tr>
      </table>
    </td></tr>
  </table>
</body>
</html>"""


def notification_email(
    notification_type: str,
    title: str,
    body: str | None,
    link: str | None,
    *,
    base_url: str,
) -> tuple[str, str]:
    cta_url = f"{base_url}{link}" if link else base_url
    content = f'<h2 style="margin:0 0 16px;color:#FFFFFF;font-size:20px;">{escape(title)}</h2>'
    if body:
        content += f'<p style="margin:0 0 24px;font-size:16px;line-height:1.6;">{escape(body)}</p>'
    content += _button(cta_url, NOTIFICATION_CTA_TEXTS.get(notification_type, DEFAULT_CTA_TEXT))
    subject = f"{NOTIFICATION_SUBJECT_PREFIXES.get(notification_type, '')}{title}"
    html_body = layout(content, base_url, footer_note="You received this email because you have notifications enabled.")
    return subject, html_body


def payment_failed_email(*, name: str, tier: str, amount: str, base_url: str) -> tuple[str, str]:
    plan = "Dubai Elite Investor" if tier == "elite" else "Dubai Investor"
    content = (
        f'<h2 style="margin:0 0 16px;color:#FFFFFF;font-size:24px;">{escape(name)}, we could not process your payment</h2>'
        f'<p style="font-size:16px;line-height:1.6;">Your {escape(amount)} payment for the {escape(plan)} membership '
        "did not go through.</p>"
        '<p style="font-size:14px;line-height:1.6;color:#898989;">Common reasons: an expired card, insufficient funds, '
        "a declined transaction or outdated billing information.</p>"
        '<p style="font-size:15px;">Please update your payment method to avoid losing access:</p>'
        + _button(f"{base_url}/settings", "Update Payment Method")
        + '<p style="font-size:13px;color:#FCA5A5;margin-top:24px;">After 3 failed payment attempts your subscription '
        "will be cancelled.</p>"
    )
    return f"Action required: payment failed for your {plan} membership", layout(content, base_url)


def welcome_email(*, name: str, base_url: str) -> tuple[str, str]:
    content = (
        f'<h2 style="margin:0 0 16px;color:#FFFFFF;font-size:24px;">Welcome, {escape(name)}!</h2>'
        '<p style="font-size:16px;line-height:1.6;">Your account is ready. Start with the market overview, '
        "then explore neighborhoods and run your first ROI calculation.</p>"
        + _button(f"{base_url}/dashboard", "Go to Dashboard")
    )
    return f"Welcome to {BRAND}", layout(content, base_url)


def contact_email(
    *,
    name: str,
    email: str,
    subject: str,
    message: str,
    base_url: str,
    phone: str | None = None,
) -> tuple[str, str]:
    phone_line = f"<p><strong>Phone:</strong> {escape(phone)}</p>" if phone else ""
    content = (
        '<h2 style="margin:0 0 16px;color:#FFFFFF;font-size:20px;">New contact form submission</h2>'
        f"<p><strong>Name:</strong> {escape(name)}</p>"
        f"<p><strong>Email:</strong> {escape(email)}</p>"
        f"{phone_line}"
        f"<p><strong>Subject:</strong> {escape(subject)}</p>"
        f'<p style="white-space:pre-wrap;line-height:1.6;">{escape(message)}</p>'
    )
    return f"New Contact Form: {subject}", layout(content, base_url)


def contact_confirmation_email(*, name: str, base_url: str) -> tuple[str, str]:
    content = (
        f'<h2 style="margin:0 0 16px;color:#FFFFFF;font-size:22px;">Thanks for reaching out, {escape(name)}</h2>'
        '<p style="font-size:16px;line-height:1.6;">We received your message and will reply within one business day.</p>'
        + _button(f"{base_url}/properties", "Browse Properties")
    )
    return "We received your message", layout(content, base_url)


@dataclass(frozen=True)
class DripTemplate:
    subject: str
    heading: str
    paragraphs: tuple[str, ...]
    cta_text: str
    cta_path: str

    def render(self, name: str, base_url: str) -> tuple[str, str]:
        safe_name = escape(name)
        content = f'<h2 style="margin:0 0 20px;font-size:24px;color:#FFFFFF;font-weight:400;">{self.heading.format(name=safe_name)}</h2>'
        for paragraph in self.paragraphs:
            content += f'<p style="margin:0 0 16px;font-size:16px;line-height:1.7;">{paragraph}</p>'
        content += _button(f"{base_url}{self.cta_path}", self.cta_text)
        return self.subject, layout(content, base_url)


DRIP_TEMPLATES: dict[str, DripTemplate] = {
    "welcome_day0": DripTemplate(
        subject="Welcome to Dubai Wealth Hub - Your Investment Journey Starts Now! 🏙️",
        heading="Welcome, {name}!",
        paragraphs=(
            "You've joined a community of investors building wealth through Dubai real estate.",
            "Start by exploring live listings and the area benchmarks that show what a fair price per square foot looks like.",
        ),
        cta_text="Explore Properties",
        cta_path="/properties",
    ),
    "welcome_day1": DripTemplate(
        subject="Your 5-Step Dubai Investment Roadmap",
        heading="{name}, here's your roadmap",
        paragraphs=(
            "1. Define your budget and goals. 2. Pick your areas. 3. Compare yields. "
            "4. Understand fees. 5. Choose ready or off-plan.",
        ),
        cta_text="Start Step 1",
        cta_path="/academy",
    ),
    "welcome_day3": DripTemplate(
        subject="5 Costly Mistakes First-Time Dubai Investors Make",
        heading="Avoid these mistakes, {name}",
        paragraphs=(
            "Underestimating service charges, ignoring developer track records and skipping a yield check "
            "are the most common ways first investments disappoint.",
        ),
        cta_text="Read the Guide",
        cta_path="/blog",
    ),
    "welcome_day5": DripTemplate(
        subject="Discover Your Property's True ROI Potential",
        heading="What will your property really earn, {name}?",
        paragraphs=("Our calculators factor in fees, service charges and vacancy so the number you see is the number you get.",),
        cta_text="Try the ROI Calculator",
        cta_path="/tools/roi",
    ),
    "welcome_day7": DripTemplate(
        subject="Unlock Premium Features - Special Offer Inside",
        heading="Ready to go further, {name}?",
        paragraphs=("Investor members get the full Academy, every calculator with AI analysis, and the member community.",),
        cta_text="See Membership Plans",
        cta_path="/pricing",
    ),
    "welcome_day14": DripTemplate(
        subject="How Sarah Made AED 2.4M on Her First Dubai Investment",
        heading="A member story for you, {name}",
        paragraphs=("Sarah bought off-plan in an emerging area, held through handover and sold at a 2.4M gain.",),
        cta_text="Read Her Story",
        cta_path="/success-stories",
    ),
    "welcome_day21": DripTemplate(
        subject="Last Chance: 30% Off Investor Membership",
        heading="{name}, your offer expires soon",
        paragraphs=("This is the last reminder: 30% off your first year of Investor membership.",),
        cta_text="Claim 30% Off",
        cta_path="/pricing",
    ),
    "investor_day7": DripTemplate(
        subject="Tips to Maximize Your Investor Membership",
        heading="Getting the most out of your membership, {name}",
        paragraphs=("Save properties to compare them side by side, and join a live investor event this month.",),
        cta_text="Open Your Dashboard",
        cta_path="/dashboard",
    ),
    "investor_day30": DripTemplate(
        subject="Your Monthly Investment Impact Report",
        heading="Your first month, {name}",
        paragraphs=("Here's what changed in the market since you joined, and which areas moved the most.",),
        cta_text="View Market Report",
        cta_path="/market-reports",
    ),
    "investor_day45": DripTemplate(
        subject="Exclusive Preview: Elite Member Benefits",
        heading="A look at Elite, {name}",
        paragraphs=("Elite members get priority off-plan allocations, AI property analysis and the private Deal Room.",),
        cta_text="Explore Elite",
        cta_path="/pricing",
    ),
}


def render_drip(email_key: str, name: str, base_url: str) -> tuple[str, str] | None:
    template = DRIP_TEMPLATES.get(email_key)
    if template is None:
        return None
    return template.render(name, base_url)
