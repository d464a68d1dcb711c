"""Shared constants for workflow definitions."""

import re

# {{variable}} template syntax
VARIABLE_PATTERN = re.compile(r"\{\{(\w+)\}\}")

MAX_JSON_PATH_LENGTH = 500

# Methods whose requests carry a body
BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

DEFAULT_TIMEOUT_SECONDS = 30.0
