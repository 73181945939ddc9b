# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core engine packages for TutorWatch.

- config: Environment settings and YAML loading
- monitoring: Activity ingestion, risk scoring, pattern detection, alerting
"""
