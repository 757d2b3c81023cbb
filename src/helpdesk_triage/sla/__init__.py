"""
SLA Tracking Module
===================

Bounded Context for Service Level Agreement tracking and escalation.

Responsibilities:
- Compute response/resolution deadlines from the urgency x impact matrix
- Record first response and resolution against those deadlines
- Scan tracked tickets periodically and raise deduplicated alerts
- Deliver alerts through a notifier (Slack webhook)
"""
