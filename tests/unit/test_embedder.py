"""Unit tests for the embedding generator."""

from __future__ import annotations

import math
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from investor_ingest.config import Settings
from investor_ingest.ingestion.embedder import (
    EmbeddingGenerator,
    HashEmbeddings,
    get_embedding_function,
)


class TestHashEmbeddings:
    def test_dimension(self) -> None:
        assert len(HashEmbeddings(32).embed_query("seed fund")) == 32

    def test_deterministic(self) -> None:
        emb = HashEmbeddings(16)
        assert emb.embed_query("seed fund") == emb.embed_query("seed fund")
        assert emb.embed_documents(["a", "b"]) == [emb.embed_query("a"), emb.embed_query("b")]

    def test_distinct_texts_differ(self) -> None:
        emb = HashEmbeddings(16)
        assert emb.embed_query("seed") != emb.embed_query("growth")

    def test_unit_norm(self) -> None:
        vec = HashEmbeddings(1536).embed_query("Series A fintech")
        assert math.isclose(math.sqrt(sum(v * v for v in vec)), 1.0, rel_tol=1e-9)

    def test_invalid_dimension(self) -> None:
        with pytest.raises(ValueError):
            HashEmbeddings(0)


class TestGetEmbeddingFunction:
    def test_hash_backend(self) -> None:
        fn = get_embedding_function("hash", dimension=8)
        assert isinstance(fn, HashEmbeddings)
        assert fn.dimension == 8

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValueError, match="Unsupported embedding_backend"):
            get_embedding_function("word2vec")

    def test_hash_backend_default_dimension(self) -> None:
        fn = get_embedding_function("hash")
        assert isinstance(fn, HashEmbeddings)
        assert fn.dimension == 1536


class TestEmbeddingSettings:
    @pytest.fixture(autouse=True)
    def _clean_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("EMBEDDING_BACKEND", "EMBEDDING_MODEL", "EMBEDDING_DIM"):
            monkeypatch.delenv(name, raising=False)

    def test_hash_defaults(self) -> None:
        config = Settings(_env_file=None)
        assert config.embedding_model == "text-embedding-hash-v1"
        assert config.embedding_dim == 1536

    def test_huggingface_defaults(self) -> None:
        config = Settings(_env_file=None, embedding_backend="huggingface")
        assert config.embedding_model == "sentence-transformers/all-MiniLM-L6-v2"
        assert config.embedding_dim == 384

    def test_explicit_values_win(self) -> None:
        config = Settings(_env_file=None, embedding_backend="huggingface", embedding_model="BAAI/bge-small-en", embedding_dim=512)
        assert config.embedding_model == "BAAI/bge-small-en"
        assert config.embedding_dim == 512

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValidationError, match="Unsupported embedding_backend"):
            Settings(_env_file=None, embedding_backend="word2vec")


class TestEmbeddingGenerator:
    def _fake_backend(self) -> MagicMock:
        backend = MagicMock()
        backend.embed_documents.side_effect = lambda texts: [[float(len(t)), 0.0] for t in texts]
        return backend

    def test_batches_requests(self) -> None:
        backend = self._fake_backend()
        gen = EmbeddingGenerator(backend, model="fake-model", batch_size=2)
        results = gen.embed_texts(["a", "bb", "ccc", "dddd", "eeeee"])

        assert backend.embed_documents.call_count == 3
        assert [r.embedding[0] for r in results] == [1.0, 2.0, 3.0, 4.0, 5.0]
        assert all(r.model == "fake-model" and r.dimension == 2 for r in results)

    def test_embed_text(self) -> None:
        gen = EmbeddingGenerator(HashEmbeddings(8), model="hash-test")
        result = gen.embed_text("thesis")
        assert result.dimension == 8
        assert result.model == "hash-test"
        assert result.embedding == HashEmbeddings(8).embed_query("thesis")

    def test_empty_input_makes_no_calls(self) -> None:
        backend = self._fake_backend()
        assert EmbeddingGenerator(backend, model="m").embed_texts([]) == []
        backend.embed_documents.assert_not_called()

    def test_vector_count_mismatch(self) -> None:
        backend = MagicMock()
        backend.embed_documents.return_value = [[0.1, 0.2]]
        gen = EmbeddingGenerator(backend, model="m", batch_size=10)
        with pytest.raises(RuntimeError, match="returned 1 vectors for 2 texts"):
            gen.embed_texts(["a", "b"])

    def test_invalid_batch_size(self) -> None:
        with pytest.raises(ValueError):
            EmbeddingGenerator(HashEmbeddings(4), model="m", batch_size=-1)
