"""
Technician Assignment Module
============================

Bounded Context for routing classified tickets to technicians.

Responsibilities:
- Score candidate technicians by specialization, load and recent performance
- Suggest the best technician, or report that none is available
- Reserve technician capacity atomically when a ticket is assigned
"""
