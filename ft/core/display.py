from dataclasses import dataclass
from ft.core.session import SessionKind, SessionPhase
from ft.util.misc import format_mmss

_SESSION_LABELS = {
    SessionKind.FOCUS: "Focus Session",
    SessionKind.BREAK: "Break Time",
}


# Everything the display collaborator needs for one render. Purely a sink, nothing flows back from it.
@dataclass(frozen=True)
class DisplayModel:
    display_text: str
    title_text: str
    session_label_text: str
    button_text: str
    toggle_text: str


def build_display(state):
    time_str = format_mmss(state.remaining_seconds)
    if state.phase is SessionPhase.PAUSED:
        label = "Paused"
    else:
        label = _SESSION_LABELS[state.kind]
    return DisplayModel(
        display_text=time_str,
        title_text=f"Pomodoro - {time_str}",
        session_label_text=label,
        button_text="Pause" if state.running else "Start",
        toggle_text="Switch to Break" if state.kind is SessionKind.FOCUS else "Switch to Focus",
    )
