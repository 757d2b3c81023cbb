"""
Shared Kernel Module
====================

Generic infrastructure used by every bounded context (triage, assignment
and SLA tracking).

Architecture Pattern: Modular Monolith
- Each module (triage, assignment, sla) is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add triage, assignment or SLA business logic to the shared kernel.
"""
