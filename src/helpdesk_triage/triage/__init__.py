"""
Triage Module
=============

Bounded Context for rule-based ticket classification and duplicate detection.

Responsibilities:
- Normalize Spanish ticket text and match weighted keywords
- Classify tickets by type, category, urgency and impact
- Resolve priority from urgency and impact
- Flag low-confidence classifications for human review
- Rank previously resolved tickets by textual similarity
"""
