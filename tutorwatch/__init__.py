"""TutorWatch activity monitoring engine.

Continuously evaluates behavioral events from the AI tutoring platform
(tutor interactions, authentication events, session activity) for safety
violations, usage anomalies, and system abuse. Keeps a live risk profile
per student and raises throttled alerts for operators.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
