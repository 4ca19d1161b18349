"""Route modules mounted by :func:`talkpoints.api.app.create_app`."""
