from enum import Enum


class PipelineState(str, Enum):
    VALIDATING = "validating"
    BILLING_RECORDING = "billing_recording"
    CLASSIFYING = "classifying"
    DISPATCHING = "dispatching"
    RESPONDING = "responding"
    HISTORY_UPDATING = "history_updating"
    DONE = "done"
    ABORTED = "aborted"


TERMINAL_STATES = {PipelineState.DONE, PipelineState.ABORTED}

VALID_TRANSITIONS = {
    PipelineState.VALIDATING: [PipelineState.BILLING_RECORDING, PipelineState.ABORTED],
    PipelineState.BILLING_RECORDING: [PipelineState.CLASSIFYING, PipelineState.ABORTED],
    PipelineState.CLASSIFYING: [PipelineState.DISPATCHING, PipelineState.ABORTED],
    PipelineState.DISPATCHING: [PipelineState.RESPONDING, PipelineState.ABORTED],
    PipelineState.RESPONDING: [PipelineState.HISTORY_UPDATING, PipelineState.ABORTED],
    PipelineState.HISTORY_UPDATING: [PipelineState.DONE, PipelineState.ABORTED],
    PipelineState.DONE: [],
    PipelineState.ABORTED: [],
}


class InvalidTransitionError(Exception):
    def __init__(self, from_state: PipelineState, to_state: PipelineState):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Invalid transition: {from_state.value} -> {to_state.value}")


def can_transition(from_state: PipelineState, to_state: PipelineState) -> bool:
    """Check if transition is valid."""
    allowed = VALID_TRANSITIONS.get(from_state, [])
    return to_state in allowed


def transition(from_state: PipelineState, to_state: PipelineState) -> PipelineState:
    """Perform state transition. Raises InvalidTransitionError if not allowed."""
    if not can_transition(from_state, to_state):
        raise InvalidTransitionError(from_state, to_state)
    return to_state


def abort(current_state: PipelineState) -> PipelineState:
    """Stop the pipeline early from any non-terminal state."""
    return transition(current_state, PipelineState.ABORTED)


def is_terminal(state: PipelineState) -> bool:
    return state in TERMINAL_STATES
