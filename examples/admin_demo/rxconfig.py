"""Reflex configuration for the data explorer admin demo app."""

import reflex as rx

config = rx.Config(
    app_name="admin_demo",
    plugins=[rx.plugins.SitemapPlugin()],
)
