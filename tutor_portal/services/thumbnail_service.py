"""First-page PNG thumbnails for Drive PDFs, plus SVG stand-ins."""

from html import escape

import fitz

THUMBNAIL_SIZES = {
    'small': 200,
    'medium': 400,
    'large': 800,
}
DEFAULT_SIZE = 'medium'
THUMBNAIL_CACHE_CONTROL = 'public, max-age=86400'
PDF_MIME_TYPE = 'application/pdf'


def resolve_width(size_name):
    return THUMBNAIL_SIZES.get(str(size_name or '').strip().lower(), THUMBNAIL_SIZES[DEFAULT_SIZE])


def render_pdf_thumbnail(pdf_bytes, width):
    document = fitz.open(stream=pdf_bytes, filetype='pdf')
    try:
        if document.page_count < 1:
            raise ValueError('PDF has no pages')
        page = document.load_page(0)
        zoom = float(width) / float(page.rect.width or width)
        pixmap = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
        return pixmap.tobytes('png')
    finally:
        document.close()


def fallback_svg(width):
    height = int(round(width * 1.414))
    return (
        f'<svg width="{width}" height="{height}" xmlns="http://www.w3.org/2000/svg">'
        f'<rect width="100%" height="100%" fill="#f3f4f6"/>'
        f'<rect x="10" y="10" width="{width - 20}" height="{height - 20}" fill="white" stroke="#d1d5db" stroke-width="2"/>'
        f'<text x="50%" y="50%" text-anchor="middle" font-family="Arial" font-size="14" fill="#6b7280">PDF Preview</text>'
        f'</svg>'
    )


def placeholder_svg(file_id):
    short_id = escape(str(file_id or '')[:8])
    return (
        '<svg width="400" height="565" xmlns="http://www.w3.org/2000/svg">'
        '<rect width="100%" height="100%" fill="#f8fafc"/>'
        '<rect x="20" y="20" width="360" height="525" fill="white" stroke="#e2e8f0" stroke-width="2" rx="8"/>'
        '<text x="200" y="260" text-anchor="middle" font-family="Arial" font-size="18" fill="#334155">PDF Document</text>'
        '<text x="200" y="290" text-anchor="middle" font-family="Arial" font-size="13" fill="#64748b">Preview niet beschikbaar</text>'
        f'<text x="200" y="320" text-anchor="middle" font-family="monospace" font-size="11" fill="#94a3b8">{short_id}</text>'
        '</svg>'
    )
