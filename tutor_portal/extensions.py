def init_extensions(app, app_ctx) -> None:
    """Start Sentry and record which backing services came up."""
    if app is None:
        return
    sentry_enabled = app_ctx.init_sentry()
    app.extensions.setdefault('tutor_portal', {})
    app.extensions['tutor_portal'].update({
        'factory_initialized': True,
        'sentry_enabled': sentry_enabled,
        'firebase_ready': app_ctx.db is not None,
        'gemini_ready': app_ctx.client is not None,
    })
