from html import escape

from app.db.schema import PDIRequest
from app.models.auth import Principal


_LAYOUT = """<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>{title}</title></head>
<body style="margin: 0; padding: 0; font-family: 'Segoe UI', Tahoma, Verdana, sans-serif; background-color: #f4f7fa;">
  <table role="presentation" style="width: 600px; margin: 40px auto; background-color: #ffffff; border-radius: 8px;">
    <tr><td style="padding: 32px 40px 16px; text-align: center; background: {accent}; border-radius: 8px 8px 0 0;">
      <h1 style="margin: 0; color: #ffffff; font-size: 26px;">{title}</h1>
    </td></tr>
    <tr><td style="padding: 32px 40px; color: #333333; font-size: 15px; line-height: 1.6;">
      {body}
      <div style="text-align: center; margin-top: 28px;">
        <a href="{link}" style="background-color: #111318; color: #fff; padding: 12px 24px; text-decoration: none; border-radius: 6px;">{link_label}</a>
      </div>
    </td></tr>
  </table>
</body>
</html>
"""


def pdi_request_admin_template(request: PDIRequest, requester: Principal, public_url: str) -> str:
    body = (
        f"<p>A new PDI request has been submitted by <strong>{escape(requester.name)}</strong>"
        f" ({escape(requester.email)}).</p>"
        "<table style=\"width: 100%; background-color: #f8f9fa; padding: 16px; border-radius: 8px;\">"
        f"<tr><td><strong>Vehicle:</strong></td><td>{escape(request.vehicle_name)} ({escape(request.vehicle_model)})</td></tr>"
        f"<tr><td><strong>Location:</strong></td><td>{escape(request.location)}</td></tr>"
        f"<tr><td><strong>Preferred date:</strong></td><td>{request.preferred_date or 'Any'}</td></tr>"
        f"<tr><td><strong>Client mobile:</strong></td><td>{escape(request.mobile or 'N/A')}</td></tr>"
        "</table>"
    )
    return _LAYOUT.format(
        title="New PDI Request",
        accent="linear-gradient(135deg, #e8a317 0%, #ff6b35 100%)",
        body=body,
        link=f"{public_url}/admin/requests",
        link_label="View Request",
    )


def pdi_status_update_template(request: PDIRequest, status: str, message: str = None, public_url: str = "") -> str:
    body = (
        f"<p>The status of your PDI request for <strong>{escape(request.vehicle_name)}</strong>"
        " has been updated.</p>"
        "<div style=\"background-color: #f8f9fa; padding: 16px; border-radius: 8px; text-align: center;\">"
        "<span style=\"font-size: 13px; color: #666; display: block;\">New Status</span>"
        f"<span style=\"font-size: 22px; font-weight: bold;\">{escape(status.replace('_', ' '))}</span>"
        "</div>"
    )
    if message:
        body += (
            "<div style=\"background-color: #fff3cd; border-left: 4px solid #e8a317; padding: 14px; margin-top: 20px;\">"
            f"<strong>Admin Message:</strong><br>{escape(message)}"
            "</div>"
        )
    return _LAYOUT.format(
        title="PDI Status Update",
        accent="linear-gradient(135deg, #11998e 0%, #38ef7d 100%)",
        body=body,
        link=f"{public_url}/client/requests",
        link_label="View Details",
    )
