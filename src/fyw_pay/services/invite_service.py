"""
Invite Service - renders and stores the invitation card for fully paid students
"""
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List
from xml.sax.saxutils import escape, quoteattr

import segno

from ..constants import day_label
from ..db.base import utcnow
from ..db.models.package import Package
from ..db.models.student import Student
from ..exceptions import InviteGenerationError
from .storage_provider import StorageProvider

logger = logging.getLogger(__name__)

MAX_BENEFITS = 6
QR_SCALE = 5


@dataclass
class InviteArtifact:
    image_url: str
    generated_at: datetime


def _text(x: int, y: int, value: str, size: int = 20, weight: int = 700, fill: str = "#1e293b", anchor: str = "start") -> str:
    return (
        f'  <text x="{x}" y="{y}" text-anchor="{anchor}" font-family="Arial, sans-serif" '
        f'font-size="{size}" font-weight="{weight}" fill="{fill}">{escape(value)}</text>'
    )


class InviteService:
    """Builds an SVG invitation and puts it in storage"""

    def __init__(self, storage: StorageProvider, signing_secret: str):
        self.storage = storage
        self.signing_secret = signing_secret

    def verification_code(self, student: Student, package: Package, generated_at: datetime) -> str:
        """Short keyed digest printed on the card so the gate can check it"""
        message = f"{student.matric_number}|{package.code}|{generated_at.isoformat()}"
        digest = hmac.new(self.signing_secret.encode(), message.encode(), hashlib.sha256).hexdigest()
        return digest[:12].upper()

    def qr_payload(self, student: Student, package: Package, generated_at: datetime) -> str:
        """JSON scanned at the gate; the code lets the scanner reject forged cards"""
        return json.dumps({
            "matricNumber": student.matric_number,
            "fullName": student.full_name,
            "package": package.code,
            "selectedDays": [day_label(day) for day in (student.selected_days or [])],
            "generatedAt": generated_at.isoformat(),
            "code": self.verification_code(student, package, generated_at),
        }, separators=(",", ":"))

    def qr_data_uri(self, student: Student, package: Package, generated_at: datetime) -> str:
        qr = segno.make(self.qr_payload(student, package, generated_at), error="m")
        return qr.png_data_uri(scale=QR_SCALE, border=1)

    def render_svg(self, student: Student, package: Package, generated_at: datetime) -> str:
        benefits: List[str] = list(package.benefits or [])[:MAX_BENEFITS]
        days = [day_label(day) for day in (student.selected_days or [])] or ["No event days selected"]
        code = self.verification_code(student, package, generated_at)
        qr_uri = self.qr_data_uri(student, package, generated_at)

        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<svg width="1200" height="900" viewBox="0 0 1200 900" xmlns="http://www.w3.org/2000/svg">',
            '  <rect width="1200" height="900" fill="#f8fafc"/>',
            '  <rect x="30" y="30" width="1140" height="840" rx="28" fill="#ffffff" stroke="#e2e8f0" stroke-width="2"/>',
            _text(70, 95, "FYW PAY", size=36, weight=900, fill="#0f172a"),
            _text(1130, 95, "OFFICIAL INVITATION", weight=900, fill="#1b5e20", anchor="end"),
            _text(70, 200, "Final Year Week", size=54, weight=900, fill="#0f172a"),
            _text(70, 298, student.full_name, size=26, weight=900),
            _text(70, 326, f"Matric No: {student.matric_number}", fill="#475569"),
            _text(70, 352, f"Package: {package.name}", fill="#475569"),
            _text(70, 400, "Package benefits", size=22, weight=900),
        ]
        for index, benefit in enumerate(benefits):
            lines.append(_text(70, 434 + index * 34, f"• {benefit}"))

        lines.append(_text(70, 660, "Access days", size=22, weight=900))
        for index, day in enumerate(days[:5]):
            lines.append(_text(70, 694 + index * 30, f"• {day}", fill="#334155"))

        lines.extend([
            '  <rect x="855" y="150" width="220" height="220" rx="14" fill="#ffffff" stroke="#cbd5e1"/>',
            f'  <image x="865" y="160" width="200" height="200" href={quoteattr(qr_uri)}/>',
            '  <rect x="800" y="400" width="330" height="200" rx="18" fill="#f1f5f9" stroke="#cbd5e1"/>',
            _text(965, 460, "VERIFICATION CODE", size=18, weight=900, fill="#64748b", anchor="middle"),
            _text(965, 520, code, size=34, weight=900, fill="#0f172a", anchor="middle"),
            _text(965, 570, student.matric_number, size=18, fill="#64748b", anchor="middle"),
            _text(1130, 850, f"Generated on {generated_at.strftime('%Y-%m-%d %H:%M UTC')}",
                  size=14, weight=400, fill="#94a3b8", anchor="end"),
            "</svg>",
        ])
        return "\n".join(lines)

    def generate(self, student: Student, package: Package) -> InviteArtifact:
        """
        Render and store the invite for a student

        Raises:
            InviteGenerationError: rendering or storage failed
        """
        generated_at = utcnow().replace(microsecond=0)
        key = f"invites/invite-{student.matric_number.replace('/', '-')}.svg"
        try:
            svg = self.render_svg(student, package, generated_at)
            self.storage.put(key, svg.encode("utf-8"), content_type="image/svg+xml")
            image_url = self.storage.get_url(key)
        except Exception as e:
            logger.error(f"Invite generation failed for {student.matric_number}: {e}", exc_info=True)
            raise InviteGenerationError("Failed to generate invite")

        logger.info(f"Invite generated for {student.matric_number}: {image_url}")
        return InviteArtifact(image_url=image_url, generated_at=generated_at)
