"""
CareFlow
========

Agentic workflow automation and medical knowledge RAG for telemedicine
clinics.

Architecture:
- Workflow Engine: Runs fixed clinical workflow templates step by step
- Agent Registry: Capability-bound agents (scheduling, triage, ...)
- Collaboration Coordinator: Fans a goal out to several agents at once
- Task Planner: Turns a free-text goal into agent tasks
- RAG Query Service: Vector retrieval + guideline-checked answers
"""

__version__ = "1.0.0"
__author__ = "AI Engineer"
