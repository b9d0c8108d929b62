"""
Mock Interview: timed technical interview sessions from the terminal.

Packages:
- engine: session model, timer, state machine, scoring, persistence, orchestrator
- candidates: candidate registration and profile completion
- integrations: Gemini API client
- cli: typer front end
"""

__version__ = "1.0.0"
