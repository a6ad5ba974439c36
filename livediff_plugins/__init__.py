"""Loadable plugins; each module exposes ``create_plugin(config)``."""
