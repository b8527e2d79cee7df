import re
import html
from typing import Any, Dict, Optional, Iterable
import bleach


class InputSanitizer:
    """Input sanitization utility to prevent XSS attacks"""

    # Blog bodies come from a rich text editor
    ALLOWED_TAGS = [
        'p', 'br', 'hr', 'strong', 'b', 'em', 'i', 'u', 's', 'span',
        'h1', 'h2', 'h3', 'h4', 'h5', 'h6',
        'ul', 'ol', 'li', 'blockquote', 'code', 'pre',
        'a', 'img', 'figure', 'figcaption',
        'table', 'thead', 'tbody', 'tr', 'th', 'td',
    ]

    ALLOWED_ATTRIBUTES = {
        '*': ['class', 'id'],
        'a': ['href', 'title', 'target', 'rel'],
        'img': ['src', 'alt', 'title', 'width', 'height'],
    }

    ALLOWED_PROTOCOLS = ['http', 'https', 'mailto']

    @staticmethod
    def sanitize_text(text: Optional[str]) -> str:
        """Plain text: strip every tag and collapse whitespace"""
        if not isinstance(text, str):
            return ""
        stripped = bleach.clean(text, tags=[], attributes={}, strip=True, strip_comments=True)
        return re.sub(r'\s+', ' ', html.unescape(stripped)).strip()

    @staticmethod
    def sanitize_multiline(text: Optional[str]) -> str:
        """Plain text that keeps its line breaks, e.g. a contact message"""
        if not isinstance(text, str):
            return ""
        stripped = bleach.clean(text, tags=[], attributes={}, strip=True, strip_comments=True)
        lines = [re.sub(r'[ \t]+', ' ', line).strip() for line in html.unescape(stripped).splitlines()]
        return "\n".join(lines).strip()

    @staticmethod
    def sanitize_html(html_content: Optional[str]) -> str:
        """Sanitize HTML content while preserving safe tags"""
        if not isinstance(html_content, str):
            return ""
        return bleach.clean(
            html_content,
            tags=InputSanitizer.ALLOWED_TAGS,
            attributes=InputSanitizer.ALLOWED_ATTRIBUTES,
            protocols=InputSanitizer.ALLOWED_PROTOCOLS,
            strip=True,
            strip_comments=True,
        ).strip()

    @staticmethod
    def escape(text: Optional[str]) -> str:
        """Escape user text before interpolating it into an HTML email"""
        if not isinstance(text, str):
            return ""
        return html.escape(text)

    def sanitize_dict(
        self, data: Dict[str, Any], skip: Iterable[str] = ("password",)
    ) -> Dict[str, Any]:
        """Sanitize all string values in a dictionary; keys in ``skip`` pass through"""
        sanitized = {}

        for key, value in data.items():
            if key in skip:
                sanitized[key] = value
                continue
            lowered = key.lower()
            if isinstance(value, str):
                if lowered in ('description', 'excerpt', 'content'):
                    sanitized[key] = self.sanitize_html(value)
                elif lowered == 'message':
                    sanitized[key] = self.sanitize_multiline(value)
                elif 'email' in lowered:
                    sanitized[key] = value.strip().lower()
                else:
                    sanitized[key] = self.sanitize_text(value)
            elif isinstance(value, dict):
                sanitized[key] = self.sanitize_dict(value)
            else:
                sanitized[key] = value

        return sanitized


# Global sanitizer instance
sanitizer = InputSanitizer()
