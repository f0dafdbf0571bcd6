"""End-to-end tests of the assessment pipeline through the engine."""

import pytest

from assessment_engine.errors import (
    AlreadySubmitted,
    InvalidCiphertext,
    NotEligible,
    SessionExpired,
    UnknownCategory,
)
from assessment_engine.models import Ciphertext, SessionState
from conftest import answers_for, natural_telemetry


class TestSingleQuestionQuiz:
    """One-question ``fhe`` quiz answered correctly."""

    async def test_correct_answer_is_certified(self, engine, encryptor, ledger):
        session, questions = engine.create_session("bob", "fhe")
        assert len(questions) == 1
        sid = session.session_id

        result = engine.submit(sid, answers_for(engine, encryptor, sid), natural_telemetry([20.0]))

        assert result.score.correct_count == 1
        assert result.score.total_questions == 1
        assert result.score.level == 5
        assert result.score.is_flagged is False
        assert result.eligible_for_certificate is True
        assert result.state is SessionState.SCORED
        assert result.level_label == "Expert"

        record = await engine.issue_certificate(sid)
        assert record.minted
        assert record.certificate.skill_type == "fhe"
        assert engine.get_session(sid).state is SessionState.CERTIFIED


class TestSubmission:
    """Submission through the full pipeline."""

    def test_partial_score(self, engine, encryptor):
        session, _ = engine.create_session("alice", "security")
        sid = session.session_id
        result = engine.submit(sid, answers_for(engine, encryptor, sid, correct=2),
                               natural_telemetry([12.0, 25.0, 40.0]))
        assert result.score.correct_count == 2
        assert result.pass_mark == 2
        assert result.score.passed is True
        assert result.score.level == 3

    def test_failing_score_rejects_session(self, engine, encryptor):
        session, _ = engine.create_session("alice", "security")
        sid = session.session_id
        result = engine.submit(sid, answers_for(engine, encryptor, sid, correct=0),
                               natural_telemetry([12.0, 25.0, 40.0]))
        assert result.score.correct_count == 0
        assert result.score.level == 1
        assert result.state is SessionState.REJECTED
        assert engine.get_session(sid).rejection_reason == "below_pass_mark"

    def test_double_submit(self, engine, encryptor):
        session, _ = engine.create_session("alice", "security")
        sid = session.session_id
        answers = answers_for(engine, encryptor, sid)
        engine.submit(sid, answers, natural_telemetry([12.0, 25.0, 40.0]))
        with pytest.raises(AlreadySubmitted):
            engine.submit(sid, answers, natural_telemetry([12.0, 25.0, 40.0]))

    def test_invalid_ciphertext_allows_resubmission(self, engine, encryptor):
        session, _ = engine.create_session("alice", "security")
        sid = session.session_id
        answers = answers_for(engine, encryptor, sid)
        broken = [Ciphertext(scheme=answers[0].scheme, data="AAAA"), *answers[1:]]

        with pytest.raises(InvalidCiphertext):
            engine.submit(sid, broken, natural_telemetry([12.0, 25.0, 40.0]))
        assert engine.get_session(sid).state is SessionState.IN_PROGRESS

        result = engine.submit(sid, answers, natural_telemetry([12.0, 25.0, 40.0]))
        assert result.score.correct_count == 3

    async def test_inflated_answer_cannot_earn_certificate(self, engine, encryptor, scheme, ledger):
        session, _ = engine.create_session("mallory", "security")
        sid = session.session_id
        questions = engine.sessions.get(sid).question_set
        answers = answers_for(engine, encryptor, sid, correct=0)

        first = questions[0]
        values = [0] * first.option_count
        values[first.correct_index] = 3
        values[(first.correct_index + 1) % first.option_count] = -2
        pk = scheme.public_key
        body = b"".join(
            pk.encrypt(v).ciphertext(be_secure=True).to_bytes(scheme.width, "big") for v in values
        )
        borrowed = answers[0].to_bytes()[scheme.width * first.option_count:]
        answers[0] = Ciphertext.from_bytes(answers[0].scheme, body + borrowed)

        with pytest.raises(InvalidCiphertext):
            engine.submit(sid, answers, natural_telemetry([12.0, 25.0, 40.0]))
        assert engine.get_session(sid).state is SessionState.IN_PROGRESS
        with pytest.raises(NotEligible):
            await engine.issue_certificate(sid)
        assert ledger.mint_calls == 0

    def test_score_is_stored_on_session(self, engine, encryptor):
        session, _ = engine.create_session("alice", "security")
        sid = session.session_id
        result = engine.submit(sid, answers_for(engine, encryptor, sid),
                               natural_telemetry([12.0, 25.0, 40.0]))
        stored = engine.get_session(sid)
        assert stored.score_result == result.score
        assert stored.behavior == result.behavior

    def test_expired_session(self, engine, encryptor, clock):
        session, _ = engine.create_session("alice", "security")
        sid = session.session_id
        answers = answers_for(engine, encryptor, sid)
        clock.advance(601)
        with pytest.raises(SessionExpired):
            engine.submit(sid, answers, natural_telemetry([12.0, 25.0, 40.0]))

    def test_unknown_category(self, engine):
        with pytest.raises(UnknownCategory):
            engine.create_session("alice", "astrology")

    async def test_sweep(self, engine, encryptor, clock):
        engine.create_session("alice", "security")
        session, _ = engine.create_session("bob", "fhe")
        sid = session.session_id
        engine.submit(sid, answers_for(engine, encryptor, sid), natural_telemetry([20.0]))
        record = await engine.issue_certificate(sid)
        assert record.minted

        clock.advance(601)
        assert engine.sweep() == (1, 0)
        assert engine.get_certificate(sid) is not None

        clock.advance(10_000)
        assert engine.sweep() == (0, 2)
        assert engine.get_certificate(sid) is None
        assert engine.issuer._records == {}
        assert engine.issuer._locks == {}

    def test_analyzer_failure_leaves_session_open(self, engine, encryptor, monkeypatch):
        session, _ = engine.create_session("alice", "security")
        sid = session.session_id
        answers = answers_for(engine, encryptor, sid)

        def broken(telemetry):
            raise RuntimeError("analyzer crashed")

        monkeypatch.setattr(engine.analyzer, "analyze", broken)
        with pytest.raises(RuntimeError):
            engine.submit(sid, answers, natural_telemetry([12.0, 25.0, 40.0]))
        stored = engine.get_session(sid)
        assert stored.state is SessionState.IN_PROGRESS
        assert stored.submitted_at is None

        monkeypatch.undo()
        result = engine.submit(sid, answers, natural_telemetry([12.0, 25.0, 40.0]))
        assert result.score.correct_count == 3
