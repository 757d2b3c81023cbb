"""
Helpdesk Triage
===============

Deterministic, explainable triage for a Spanish-language support desk.

Modules:
- Triage: keyword classification, priority and duplicate detection
- Assignment: technician scoring and capacity-safe assignment
- SLA Tracking: deadline computation and the periodic alert scan

Use ``helpdesk_triage.engine.build_engine`` to wire everything from settings.
"""

__version__ = "1.0.0"
