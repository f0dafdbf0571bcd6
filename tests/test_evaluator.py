"""Tests for encrypted evaluation over one-hot Paillier answers."""

import base64

import pytest

from assessment_engine.errors import AnswerCountMismatch, InvalidCiphertext
from assessment_engine.models import Ciphertext, QuestionTemplate
from fhe_evaluator.evaluator import EncryptedEvaluator
from fhe_evaluator.proofs import decode_proof, encode_proof, prove_bit, verify_bit
from fhe_evaluator.scheme import ONE_HOT_TAG, SCORE_TAG, AnswerEncryptor, PaillierScheme


@pytest.fixture
def questions():
    return [
        QuestionTemplate(id="q1", category="t", prompt="?", options=("a", "b", "c"), correct_index=2),
        QuestionTemplate(id="q2", category="t", prompt="?", options=("a", "b"), correct_index=0),
        QuestionTemplate(id="q3", category="t", prompt="?", options=("a", "b", "c", "d"), correct_index=1),
    ]


@pytest.fixture
def evaluator(scheme):
    return EncryptedEvaluator(scheme)


def _counts(questions):
    return [q.option_count for q in questions]


class TestEvaluate:
    """Correct counts come only from the decrypted aggregate."""

    @pytest.mark.parametrize("choices, expected", [
        ([2, 0, 1], 3),
        ([2, 1, 1], 2),
        ([0, 1, 0], 0),
    ])
    def test_counts_correct_answers(self, evaluator, encryptor, questions, choices, expected):
        answers = encryptor.encrypt_answers(choices, _counts(questions))
        correct, encrypted_score = evaluator.evaluate(questions, answers)
        assert correct == expected
        assert encrypted_score.scheme == SCORE_TAG

    def test_encrypted_score_decrypts_to_count(self, evaluator, encryptor, scheme, questions):
        answers = encryptor.encrypt_answers([2, 0, 0], _counts(questions))
        correct, encrypted_score = evaluator.evaluate(questions, answers)
        raw = int.from_bytes(encrypted_score.to_bytes(), "big")
        assert scheme.private_key.raw_decrypt(raw) == correct == 2

    def test_same_choice_encrypts_differently(self, encryptor):
        assert encryptor.encrypt_choice(1, 3) != encryptor.encrypt_choice(1, 3)

    def test_public_key_info(self, scheme):
        info = scheme.public_key_info()
        assert info["scheme"] == ONE_HOT_TAG
        assert int(info["n"]) == scheme.public_key.n
        assert info["ciphertext_width"] == scheme.width
        assert info["proof_width"] == scheme.proof_width

    def test_encrypt_bits_rejects_non_bits(self, encryptor):
        with pytest.raises(ValueError):
            encryptor.encrypt_bits([0, 2])


class TestMalformedAnswers:
    """Bad ciphertexts are rejected, never coerced."""

    def test_count_mismatch(self, evaluator, encryptor, questions):
        answers = encryptor.encrypt_answers([2, 0], _counts(questions[:2]))
        with pytest.raises(AnswerCountMismatch):
            evaluator.evaluate(questions, answers)

    def test_wrong_scheme_tag(self, evaluator, encryptor, questions):
        answers = encryptor.encrypt_answers([2, 0, 1], _counts(questions))
        answers[1] = Ciphertext(scheme="tfhe-v0", data=answers[1].data)
        with pytest.raises(InvalidCiphertext) as exc_info:
            evaluator.evaluate(questions, answers)
        assert exc_info.value.details["question_index"] == 1

    def test_invalid_base64(self, evaluator, encryptor, questions):
        answers = encryptor.encrypt_answers([2, 0, 1], _counts(questions))
        answers[0] = Ciphertext(scheme=ONE_HOT_TAG, data="not base64!!")
        with pytest.raises(InvalidCiphertext):
            evaluator.evaluate(questions, answers)

    def test_wrong_option_count(self, evaluator, encryptor, questions):
        answers = encryptor.encrypt_answers([2, 0, 1], _counts(questions))
        answers[2] = encryptor.encrypt_choice(1, 3)
        with pytest.raises(InvalidCiphertext) as exc_info:
            evaluator.evaluate(questions, answers)
        assert exc_info.value.details["question_index"] == 2

    def test_zero_ciphertext_outside_group(self, evaluator, scheme, questions):
        blob = Ciphertext.from_bytes(ONE_HOT_TAG, bytes((scheme.width + scheme.proof_width) * 3))
        answers = [blob, *_valid_tail(scheme)]
        with pytest.raises(InvalidCiphertext):
            evaluator.evaluate(questions, answers)

    def test_blob_without_proofs(self, evaluator, encryptor, scheme, questions):
        answers = encryptor.encrypt_answers([2, 0, 1], _counts(questions))
        bare = answers[0].to_bytes()[: scheme.width * 3]
        answers[0] = Ciphertext.from_bytes(ONE_HOT_TAG, bare)
        with pytest.raises(InvalidCiphertext):
            evaluator.evaluate(questions, answers)

    def test_not_one_hot(self, evaluator, encryptor, scheme, questions):
        answers = [encryptor.encrypt_bits([1, 1, 1]), *_valid_tail(scheme)]
        with pytest.raises(InvalidCiphertext) as exc_info:
            evaluator.evaluate(questions, answers)
        assert "one-hot" in str(exc_info.value)

    def test_all_zero_vector(self, evaluator, encryptor, scheme, questions):
        answers = [encryptor.encrypt_bits([0, 0, 0]), *_valid_tail(scheme)]
        with pytest.raises(InvalidCiphertext):
            evaluator.evaluate(questions, answers)


class TestInflatedEntries:
    """Entries outside {0, 1} that still sum to one are rejected."""

    def test_entries_summing_to_one_rejected(self, evaluator, encryptor, scheme, questions):
        # 3 at the correct option, -2 next to it: the sum is 1, the match is 3
        honest = encryptor.encrypt_choice(2, 3)
        answers = [
            _forged(scheme, [0, -2, 3], proofs_from=honest),
            *_valid_tail(scheme),
        ]
        with pytest.raises(InvalidCiphertext) as exc_info:
            evaluator.evaluate(questions, answers)
        assert exc_info.value.details["question_index"] == 0
        assert "0/1 proof" in str(exc_info.value)

    def test_forged_vector_would_otherwise_score(self, encryptor, scheme):
        forged = _forged(scheme, [0, -2, 3], proofs_from=encryptor.encrypt_choice(2, 3))
        vector = scheme.decode_answer(forged, 3)
        assert scheme.decrypt(scheme.add(vector)) == 1
        assert scheme.decrypt(scheme.dot(vector, [0, 0, 1])) == 3

    def test_swapped_proofs_rejected(self, evaluator, encryptor, scheme, questions):
        first = encryptor.encrypt_choice(2, 3).to_bytes()
        width = scheme.width * 3
        values, proofs = first[:width], first[width:]
        size = scheme.proof_width
        swapped = proofs[size : 2 * size] + proofs[:size] + proofs[2 * size :]
        answers = [Ciphertext.from_bytes(ONE_HOT_TAG, values + swapped), *_valid_tail(scheme)]
        with pytest.raises(InvalidCiphertext):
            evaluator.evaluate(questions, answers)


class TestBitProofs:
    """The 0/1 proof accepts honest bits only."""

    @pytest.mark.parametrize("bit", [0, 1])
    def test_honest_bit_verifies(self, scheme, bit):
        pk = scheme.public_key
        r = pk.get_random_lt_n()
        c = pk.raw_encrypt(bit, r_value=r)
        assert verify_bit(pk, c, prove_bit(pk, c, bit, r))

    @pytest.mark.parametrize("value, claimed", [(2, 1), (3, 1), (2, 0)])
    def test_proof_for_other_value_fails(self, scheme, value, claimed):
        pk = scheme.public_key
        r = pk.get_random_lt_n()
        c = pk.raw_encrypt(value, r_value=r)
        assert not verify_bit(pk, c, prove_bit(pk, c, claimed, r))

    def test_round_trip_encoding(self, scheme):
        pk = scheme.public_key
        r = pk.get_random_lt_n()
        c = pk.raw_encrypt(1, r_value=r)
        proof = prove_bit(pk, c, 1, r)
        raw = encode_proof(pk, proof)
        assert len(raw) == scheme.proof_width
        assert decode_proof(pk, raw) == proof

    def test_tampered_response_fails(self, scheme):
        pk = scheme.public_key
        r = pk.get_random_lt_n()
        c = pk.raw_encrypt(0, r_value=r)
        proof = prove_bit(pk, c, 0, r)
        assert not verify_bit(pk, c, proof._replace(z0=proof.z0 * 2 % pk.n or 1))


def _valid_tail(scheme: PaillierScheme) -> list[Ciphertext]:
    enc = AnswerEncryptor(scheme.public_key)
    return [enc.encrypt_choice(0, 2), enc.encrypt_choice(1, 4)]


def _forged(scheme: PaillierScheme, values: list[int], proofs_from: Ciphertext) -> Ciphertext:
    """Encrypt arbitrary integers and borrow the proof section of another answer."""
    pk = scheme.public_key
    body = b"".join(
        pk.encrypt(v).ciphertext(be_secure=True).to_bytes(scheme.width, "big")
        for v in values
    )
    tail = proofs_from.to_bytes()[scheme.width * len(values):]
    return Ciphertext.from_bytes(ONE_HOT_TAG, body + tail)


class TestCiphertextModel:
    """Base64 transport of raw ciphertext bytes."""

    def test_from_bytes(self):
        ct = Ciphertext.from_bytes("x", b"\x00\x01\xff")
        assert ct.data == base64.b64encode(b"\x00\x01\xff").decode()
        assert ct.to_bytes() == b"\x00\x01\xff"

    def test_digest_depends_on_scheme(self):
        a = Ciphertext.from_bytes("a", b"blob")
        b = Ciphertext.from_bytes("b", b"blob")
        assert a.digest() != b.digest()
        assert len(a.digest()) == 64

    def test_to_bytes_rejects_garbage(self):
        with pytest.raises(ValueError):
            Ciphertext(scheme="x", data="***").to_bytes()
