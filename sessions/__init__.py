"""
Sessions Package

This package contains the focused components of a fortune-telling session.

Components:
- PhaseController: Owns the session and its phase transitions (entry point)
- ConversationManager: Rate-limited chat turns and readiness detection
- CardDeckManager: Dealing, selection and orientation
- RevealSequencer: Paced reveal with a one-shot handover
- InterpretationOrchestrator: Reading request, fallback, paced display, gift
- TaskScheduler: Cancellable per-session timers

Usage:
    from sessions.phase_controller import PhaseController
    from sessions.session_state import Phase, SessionTimings

Note: Import directly from submodules to avoid circular import issues.
"""

__all__ = [
    "CardDeckManager",
    "ConversationManager",
    "InterpretationOrchestrator",
    "PhaseController",
    "RevealSequencer",
    "TaskScheduler",
]
