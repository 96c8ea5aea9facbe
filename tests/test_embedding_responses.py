"""Tests for embedding response parsing."""

import pytest

from product_search.embeddings.responses import parse_embedding_response
from product_search.exceptions import EmbeddingError, ErrorCode


class TestParseEmbeddingResponse:
    """Tests for the known response envelopes."""

    def test_text_embedding(self) -> None:
        """Inference API shape is accepted."""
        payload = {"text_embedding": [{"embedding": [0.1, 0.2]}, {"embedding": [0.3, 0.4]}]}
        assert parse_embedding_response(payload, 2) == [[0.1, 0.2], [0.3, 0.4]]

    def test_openai_data_sorted_by_index(self) -> None:
        """OpenAI entries are put back into request order."""
        payload = {
            "data": [
                {"embedding": [2.0], "index": 1},
                {"embedding": [1.0], "index": 0},
            ]
        }
        assert parse_embedding_response(payload, 2) == [[1.0], [2.0]]

    def test_bare_embeddings(self) -> None:
        """A bare list of vectors is accepted."""
        assert parse_embedding_response({"embeddings": [[0.5], [0.6]]}, 2) == [[0.5], [0.6]]

    def test_inference_results_variants(self) -> None:
        """Each inference result may use a different vector key."""
        payload = {
            "inference_results": [
                {"inferred_value": [1.0]},
                {"predicted_value": [2.0]},
                {"embedding": [3.0]},
            ]
        }
        assert parse_embedding_response(payload, 3) == [[1.0], [2.0], [3.0]]

    def test_single_vector_for_single_input(self) -> None:
        """A top-level vector is accepted for one input."""
        assert parse_embedding_response({"inferred_value": [0.7]}, 1) == [[0.7]]
        assert parse_embedding_response({"embedding": [0.8]}, 1) == [[0.8]]

    def test_single_vector_rejected_for_batch(self) -> None:
        """A top-level vector cannot answer a multi-input request."""
        with pytest.raises(EmbeddingError) as exc_info:
            parse_embedding_response({"embedding": [0.8]}, 2)

        assert exc_info.value.code == ErrorCode.EMBEDDING_SHAPE_MISMATCH

    def test_unknown_shape_reports_keys(self) -> None:
        """Unrecognized bodies fail with their top-level keys."""
        with pytest.raises(EmbeddingError) as exc_info:
            parse_embedding_response({"vectors": [[0.1]], "model": "x"}, 1)

        error = exc_info.value
        assert error.code == ErrorCode.EMBEDDING_SHAPE_MISMATCH
        assert error.details["response_keys"] == ["model", "vectors"]

    def test_empty_vector_rejected(self) -> None:
        """Empty vectors do not count as embeddings."""
        with pytest.raises(EmbeddingError):
            parse_embedding_response({"text_embedding": [{"embedding": []}]}, 1)

    def test_non_object_body(self) -> None:
        """A JSON array body is a shape mismatch."""
        with pytest.raises(EmbeddingError) as exc_info:
            parse_embedding_response([[0.1]], 1)

        assert exc_info.value.details["response_keys"] == []

    @pytest.mark.parametrize(
        "vector",
        [["0.1", "0.2"], [True, False], [0.1, None]],
    )
    def test_non_numeric_elements_rejected(self, vector: list[object]) -> None:
        """Strings, booleans and nulls are not vector elements."""
        with pytest.raises(EmbeddingError) as exc_info:
            parse_embedding_response({"embeddings": [vector]}, 1)

        assert exc_info.value.code == ErrorCode.EMBEDDING_SHAPE_MISMATCH

    def test_integer_elements_accepted(self) -> None:
        """JSON integers are valid vector elements."""
        assert parse_embedding_response({"embeddings": [[1, 0]]}, 1) == [[1, 0]]

    @pytest.mark.parametrize(
        "indices",
        [(0, 0), (0, 2), (1, 2), (0, None)],
    )
    def test_data_indices_must_cover_request(self, indices: tuple[int | None, ...]) -> None:
        """Repeated, skipped or partial indices are a shape mismatch."""
        payload = {
            "data": [
                {"embedding": [float(n)], "index": index} for n, index in enumerate(indices)
            ]
        }
        with pytest.raises(EmbeddingError) as exc_info:
            parse_embedding_response(payload, 2)

        assert exc_info.value.code == ErrorCode.EMBEDDING_SHAPE_MISMATCH

    def test_data_without_indices_keeps_order(self) -> None:
        """Entries without indices are taken in response order."""
        payload = {"data": [{"embedding": [2.0]}, {"embedding": [1.0]}]}
        assert parse_embedding_response(payload, 2) == [[2.0], [1.0]]
