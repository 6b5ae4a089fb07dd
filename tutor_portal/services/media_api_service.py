"""Business logic handlers for PDF thumbnails and placeholders."""

from tutor_portal.services import rate_limit_service, security_service, thumbnail_service

SVG_MIMETYPE = 'image/svg+xml'
PNG_MIMETYPE = 'image/png'


def _image_response(app_ctx, body, mimetype, status=200):
    response = app_ctx.Response(body, status=status, mimetype=mimetype)
    response.headers['Cache-Control'] = thumbnail_service.THUMBNAIL_CACHE_CONTROL
    return response


def get_thumbnail(app_ctx, request, file_id):
    client_ip = security_service.get_client_ip(request)
    allowed, retry_after = app_ctx.check_rate_limit(
        key=rate_limit_service.build_key('thumbnail', client_ip),
        limit=app_ctx.THUMBNAIL_RATE_LIMIT_MAX_REQUESTS,
        window_seconds=app_ctx.THUMBNAIL_RATE_LIMIT_WINDOW_SECONDS,
    )
    if not allowed:
        return app_ctx.build_rate_limited_response('Too many thumbnail requests. Please try again later.', retry_after)

    width = thumbnail_service.resolve_width(request.args.get('size'))
    try:
        info = app_ctx.drive_service.get_file_info(file_id)
    except Exception as e:
        app_ctx.logger.error(f"Error loading file info for thumbnail {file_id}: {e}")
        return _image_response(app_ctx, thumbnail_service.fallback_svg(width), SVG_MIMETYPE)
    if info is None:
        return app_ctx.jsonify({'error': 'File not found'}), 404
    if info.get('mimeType') != thumbnail_service.PDF_MIME_TYPE:
        return app_ctx.jsonify({'error': 'File is not a PDF'}), 400

    try:
        pdf_bytes = app_ctx.drive_service.download_file(file_id)
        png_bytes = thumbnail_service.render_pdf_thumbnail(pdf_bytes, width)
        return _image_response(app_ctx, png_bytes, PNG_MIMETYPE)
    except Exception as e:
        app_ctx.logger.error(f"Error rendering thumbnail for {file_id}: {e}")
        return _image_response(app_ctx, thumbnail_service.fallback_svg(width), SVG_MIMETYPE)


def get_placeholder(app_ctx, request, file_id):
    return _image_response(app_ctx, thumbnail_service.placeholder_svg(file_id), SVG_MIMETYPE)
