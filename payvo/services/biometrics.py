"""
Voice sample comparison — a simulated, low-confidence biometric signal.

The capture layer this pairs with does not do real signal processing:
when no audio was captured it fills pitch/amplitude/duration with random
values. The comparator below reproduces the app's tolerance heuristic
faithfully; it is NOT a security control. Login is decided by the
passphrase text match alone, and the confidence score is only reported
back to the client as a supplementary signal.

Keep callers on the VoiceSampleComparator protocol so a test double or a
no-op can replace the heuristic without touching the ledger.
"""

from typing import Protocol

from payvo.records import VoiceSample
from payvo.security import normalize_passphrase

# Match tolerances
PITCH_TOLERANCE_HZ = 6.0
AMPLITUDE_TOLERANCE = 0.03
DURATION_TOLERANCE_S = 0.2

# Confidence scoring windows and the flat strictness penalty
CONFIDENCE_PITCH_WINDOW_HZ = 8.0
CONFIDENCE_AMPLITUDE_WINDOW = 0.03
CONFIDENCE_DURATION_WINDOW_S = 0.2
CONFIDENCE_PENALTY = 0.7

# Above this, the login response reports a biometric match
BIOMETRIC_MATCH_CONFIDENCE = 0.75

# Samples outside these ranges without audio data came from the random fallback
PLAUSIBLE_PITCH_HZ = (80.0, 300.0)
PLAUSIBLE_AMPLITUDE = (0.1, 1.0)


class VoiceSampleComparator(Protocol):
    def compare(self, sample_a: VoiceSample, sample_b: VoiceSample) -> bool: ...

    def confidence(self, sample_a: VoiceSample, sample_b: VoiceSample) -> float: ...


def looks_captured(sample: VoiceSample) -> bool:
    """True if the sample has audio data or characteristics in the plausible range."""
    if sample.has_audio_data:
        return True
    low_pitch, high_pitch = PLAUSIBLE_PITCH_HZ
    low_amp, high_amp = PLAUSIBLE_AMPLITUDE
    return low_pitch <= sample.pitch <= high_pitch and low_amp <= sample.amplitude <= high_amp


class ToleranceVoiceComparator:
    """Transcript must match; pitch, amplitude and duration within tolerance."""

    def compare(self, sample_a: VoiceSample, sample_b: VoiceSample) -> bool:
        if normalize_passphrase(sample_a.transcript) != normalize_passphrase(sample_b.transcript):
            return False
        if not (looks_captured(sample_a) and looks_captured(sample_b)):
            return False

        return (
            abs(sample_a.pitch - sample_b.pitch) <= PITCH_TOLERANCE_HZ
            and abs(sample_a.amplitude - sample_b.amplitude) <= AMPLITUDE_TOLERANCE
            and abs(sample_a.duration - sample_b.duration) <= DURATION_TOLERANCE_S
        )

    def confidence(self, sample_a: VoiceSample, sample_b: VoiceSample) -> float:
        """
        Score closeness in [0, 1].

        Each characteristic scores 1 - diff/window (floored at 0); the mean
        is scaled by the strictness penalty, so identical samples score 0.7.
        """
        pitch_score = max(0.0, 1.0 - abs(sample_a.pitch - sample_b.pitch) / CONFIDENCE_PITCH_WINDOW_HZ)
        amplitude_score = max(
            0.0, 1.0 - abs(sample_a.amplitude - sample_b.amplitude) / CONFIDENCE_AMPLITUDE_WINDOW
        )
        duration_score = max(
            0.0, 1.0 - abs(sample_a.duration - sample_b.duration) / CONFIDENCE_DURATION_WINDOW_S
        )
        raw = (pitch_score + amplitude_score + duration_score) / 3.0
        return raw * CONFIDENCE_PENALTY
