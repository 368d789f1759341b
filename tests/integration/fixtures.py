"""
Integration Test Fixtures

Fixed inputs and calibrations for deterministic testing.
All fixtures are explicit - no random generation.
"""

from aspd.contracts import CalibrationState


# =============================================================================
# INPUT TEXTS
# =============================================================================

FORMAL_TEXT = (
    "This academic research paper presents scholarly analysis "
    "through rigorous university-based methodology."
)
PERSONAL_TEXT = "I feel really happy about sharing this personal experience with you."
NEURODIVERSITY_TEXT = "Autism research in cognitive psychology."
CASUAL_TEXT = "My college course has a lecture today."
GENERAL_TEXT = "The weather is nice today."
REQUEST_TEXT = "Can you help me with this request"
TIE_BREAK_TEXT = "Could you tell me what time it is?"
PADDED_TEXT = "Um, I think the results are clear."
ONLY_PADDING_TEXT = "Um, well, you know, basically."

CONTEXT_TEXTS = (
    FORMAL_TEXT,
    PERSONAL_TEXT,
    NEURODIVERSITY_TEXT,
    CASUAL_TEXT,
    GENERAL_TEXT,
)


# =============================================================================
# CALIBRATIONS
# =============================================================================

DEFAULT_CALIBRATION = CalibrationState()

# Capability raised without moving the ceiling
OVERDRIVEN_CALIBRATION = CalibrationState(capability=3.5, safety_margin=0.1, ceiling=2.99)

# Off by less than ten tolerances
DRIFTED_CALIBRATION = CalibrationState(capability=2.89, safety_margin=0.1, ceiling=2.9905)

BROKEN_CALIBRATIONS = (OVERDRIVEN_CALIBRATION, DRIFTED_CALIBRATION)
