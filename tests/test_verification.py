import asyncio

from fakes import ScriptedOracle, identity, verdict

from smart_attendance.models.verification import (
    Failure,
    FailureReason,
    NoCandidates,
    ScanState,
    Success,
    advance,
    resolve,
    verify,
)


def run_verify(probe, roster, oracle):
    return asyncio.run(verify(probe, roster, oracle))


def test_empty_probe_fails_without_calling_oracle():
    a = identity("A")
    oracle = ScriptedOracle({a.gallery: verdict(True, True)})

    outcome = run_verify(None, [a], oracle)

    assert isinstance(outcome, Failure)
    assert outcome.reason is FailureReason.CAPTURE_EMPTY
    assert "could not capture an image" in outcome.explanation.lower()
    assert oracle.calls == []


def test_empty_string_probe_counts_as_empty_capture():
    oracle = ScriptedOracle()
    outcome = run_verify("", [identity("A")], oracle)
    assert outcome.reason is FailureReason.CAPTURE_EMPTY
    assert oracle.calls == []


def test_empty_roster_is_no_candidates():
    oracle = ScriptedOracle(default=verdict(True, True))
    outcome = run_verify("probe", [], oracle)
    assert outcome == NoCandidates()
    assert oracle.calls == []


def test_first_match_wins_and_stops_scan():
    a, b = identity("A"), identity("B")
    oracle = ScriptedOracle({a.gallery: verdict(True, True), b.gallery: verdict(True, True)})

    outcome = run_verify("probe", [a, b], oracle)

    assert outcome == Success(a)
    assert oracle.calls == [("probe", a.gallery)]


def test_liveness_failure_does_not_stop_scan():
    a, b = identity("A"), identity("B")
    oracle = ScriptedOracle({
        a.gallery: verdict(False, False, liveness_reason="looks like a screen"),
        b.gallery: verdict(True, True),
    })

    outcome = run_verify("probe", [a, b], oracle)

    assert outcome == Success(b)
    assert [gallery for _, gallery in oracle.calls] == [a.gallery, b.gallery]


def test_liveness_failure_outranks_later_match_failure():
    a, b = identity("A"), identity("B")
    oracle = ScriptedOracle({
        a.gallery: verdict(False, True, liveness_reason="photo of a photo"),
        b.gallery: verdict(True, False, match_reason="different person"),
    })

    outcome = run_verify("probe", [a, b], oracle)

    assert outcome.reason is FailureReason.LIVENESS_FAILED
    assert outcome.detail == "photo of a photo"
    assert "photo of a photo" in outcome.explanation


def test_later_liveness_failure_replaces_match_failure():
    a, b = identity("A"), identity("B")
    oracle = ScriptedOracle({
        a.gallery: verdict(True, False, match_reason="different person"),
        b.gallery: verdict(False, False, liveness_reason="no depth cues"),
    })

    outcome = run_verify("probe", [a, b], oracle)

    assert outcome.reason is FailureReason.LIVENESS_FAILED
    assert outcome.detail == "no depth cues"


def test_unavailable_oracle_does_not_override_liveness_failure():
    a, b = identity("A"), identity("B")
    oracle = ScriptedOracle({a.gallery: verdict(False, False, liveness_reason="screen glare")})

    outcome = run_verify("probe", [a, b], oracle)

    assert outcome.reason is FailureReason.LIVENESS_FAILED
    assert len(oracle.calls) == 2


def test_unavailable_oracle_replaces_match_failure():
    a, b = identity("A"), identity("B")
    oracle = ScriptedOracle({a.gallery: verdict(True, False, match_reason="different person")})

    outcome = run_verify("probe", [a, b], oracle)

    assert outcome.reason is FailureReason.ORACLE_ERROR


def test_unavailable_then_match_failure_reports_not_recognized():
    a, b = identity("A"), identity("B")
    oracle = ScriptedOracle({b.gallery: verdict(True, False, match_reason="different jawline")})

    outcome = run_verify("probe", [a, b], oracle)

    assert outcome.reason is FailureReason.IDENTITY_NOT_RECOGNIZED
    assert outcome.detail == "different jawline"


def test_all_unavailable_is_oracle_error_and_scans_everyone():
    roster = [identity("A"), identity("B"), identity("C")]
    oracle = ScriptedOracle()

    outcome = run_verify("probe", roster, oracle)

    assert outcome.reason is FailureReason.ORACLE_ERROR
    assert len(oracle.calls) == len(roster)


def test_flaky_candidate_does_not_block_later_match():
    a, b = identity("A"), identity("B")
    oracle = ScriptedOracle({b.gallery: verdict(True, True)})
    assert run_verify("probe", [a, b], oracle) == Success(b)


def test_same_inputs_give_same_outcome():
    roster = [identity("A"), identity("B")]
    verdicts = {
        roster[0].gallery: verdict(False, False, liveness_reason="printed photo"),
        roster[1].gallery: verdict(True, False),
    }

    first = run_verify("probe", roster, ScriptedOracle(verdicts))
    second = run_verify("probe", roster, ScriptedOracle(verdicts))

    assert first == second


def test_advance_ignores_candidates_after_match():
    a, b = identity("A"), identity("B")
    state = advance(ScanState(), a, verdict(True, True))
    assert advance(state, b, verdict(False, False)) is state
    assert resolve(state) == Success(a)


def test_advance_live_but_not_matching_while_liveness_failed_keeps_state():
    a, b = identity("A"), identity("B")
    state = advance(ScanState(), a, verdict(False, False, liveness_reason="mask"))
    assert state.liveness_failed
    assert advance(state, b, verdict(True, False)) == state


def test_resolve_without_any_response_is_generic_error():
    outcome = resolve(ScanState())
    assert outcome.reason is FailureReason.ORACLE_ERROR
    assert "could not verify" in outcome.explanation.lower()
