"""Tests for filter parsing and similarity query synthesis."""

import asyncpg
import pytest

from nodevec.db.errors import QueryError
from nodevec.vector import EmbeddedField, VectorStoreConfig
from nodevec.vector.retrieve import (
    MAX_TOP_K,
    MetadataFilter,
    check_top_k,
    compile_similarity_query,
    parse_filter,
    retrieve_contents,
)


class TestParseFilter:
    """Tests for parse_filter."""

    def test_quoted_value(self) -> None:
        assert parse_filter('filter = "true"') == MetadataFilter(key="filter", value="true")

    def test_unquoted_value(self) -> None:
        assert parse_filter("filter=true") == MetadataFilter(key="filter", value="true")

    def test_trims_surrounding_whitespace(self) -> None:
        assert parse_filter('  lang =   "en"  ') == MetadataFilter(key="lang", value="en")

    @pytest.mark.parametrize("expression", ["nofilterhere", "a=b=c", "", 'x == "y"'])
    def test_rejects_other_arity(self, expression: str) -> None:
        with pytest.raises(QueryError, match="Invalid filter format"):
            parse_filter(expression)

    def test_rejects_empty_key(self) -> None:
        with pytest.raises(QueryError):
            parse_filter(' = "true"')


class TestCheckTopK:
    """Tests for check_top_k."""

    @pytest.mark.parametrize("top_k", [0, 1, 10, MAX_TOP_K])
    def test_accepts_limit_range(self, top_k: int) -> None:
        assert check_top_k(top_k) == top_k

    @pytest.mark.parametrize("top_k", [-1, MAX_TOP_K + 1, 2**63])
    def test_rejects_out_of_range(self, top_k: int) -> None:
        with pytest.raises(QueryError, match="outside the range"):
            check_top_k(top_k)

    @pytest.mark.parametrize("top_k", [True, 1.5, "10"])
    def test_rejects_non_integers(self, top_k) -> None:
        with pytest.raises(QueryError, match="must be an integer"):
            check_top_k(top_k)


class TestCompileSimilarityQuery:
    """Tests for compile_similarity_query."""

    def test_unfiltered(self, field_model) -> None:
        sql = compile_similarity_query(field_model, "nodevec_test")
        assert sql == (
            "SELECT id, chunk FROM nodevec_test "
            "ORDER BY vector_combined <=> $1::vector LIMIT $2"
        )

    def test_filtered(self, field_model) -> None:
        sql = compile_similarity_query(
            field_model, "nodevec_test", "combined", MetadataFilter("filter", "true")
        )
        assert sql == (
            "SELECT id, chunk FROM nodevec_test "
            "WHERE meta_filter ->> $3::text = $4 "
            "ORDER BY vector_combined <=> $1::vector LIMIT $2"
        )

    def test_filter_value_is_never_interpolated(self, field_model) -> None:
        sql = compile_similarity_query(
            field_model, "nodevec_test", None, MetadataFilter("filter", "x' OR '1'='1")
        )
        assert "1'='1" not in sql

    def test_unknown_vector_raises(self, field_model) -> None:
        with pytest.raises(QueryError, match="Unknown vector"):
            compile_similarity_query(field_model, "nodevec_test", "title")

    def test_unknown_filter_key_raises(self, field_model) -> None:
        with pytest.raises(QueryError, match="Unknown metadata"):
            compile_similarity_query(
                field_model, "nodevec_test", None, MetadataFilter("lang", "en")
            )


class TestRetrieveContents:
    """Tests for retrieve_contents against a fake pool."""

    async def test_returns_contents_in_database_order(self, fake_pool, field_model) -> None:
        fake_pool.connection.fetch.return_value = [
            {"id": 1, "chunk": "nearest"},
            {"id": 2, "chunk": "further"},
        ]

        contents = await retrieve_contents(
            fake_pool, field_model, "nodevec_test", None, [1.0, 0.0, 0.0], 2
        )

        assert list(contents) == ["nearest", "further"]

    async def test_result_is_one_shot(self, fake_pool, field_model) -> None:
        fake_pool.connection.fetch.return_value = [{"id": 1, "chunk": "only"}]

        contents = await retrieve_contents(
            fake_pool, field_model, "nodevec_test", None, [1.0, 0.0, 0.0], 1
        )

        assert list(contents) == ["only"]
        assert list(contents) == []

    async def test_binds_embedding_limit_and_filter(self, fake_pool, field_model) -> None:
        await retrieve_contents(
            fake_pool, field_model, "nodevec_test", "combined", [1.0, 0.0, 0.0], 5, 'filter = "true"'
        )

        call = fake_pool.connection.fetch.await_args
        assert call.args[1:] == ("[1.0,0.0,0.0]", 5, "filter", "true")

    async def test_filter_key_resolves_by_normalized_name(self, fake_pool) -> None:
        model = (
            VectorStoreConfig(table_name="nodevec_test", vector_size=3)
            .with_vector(EmbeddedField.COMBINED)
            .with_metadata("Source-URL")
            .field_model()
        )

        await retrieve_contents(
            fake_pool, model, "nodevec_test", None, [1.0, 0.0, 0.0], 5, 'source_url = "https://a"'
        )

        call = fake_pool.connection.fetch.await_args
        assert "WHERE meta_source_url ->> $3::text = $4" in call.args[0]
        assert call.args[3:] == ("Source-URL", "https://a")

    async def test_empty_result(self, fake_pool, field_model) -> None:
        contents = await retrieve_contents(
            fake_pool, field_model, "nodevec_test", None, [1.0, 0.0, 0.0], 3, 'filter = "banana"'
        )
        assert list(contents) == []

    async def test_malformed_filter_fails_before_io(self, fake_pool, field_model) -> None:
        with pytest.raises(QueryError):
            await retrieve_contents(
                fake_pool, field_model, "nodevec_test", None, [1.0, 0.0, 0.0], 3, "a=b=c"
            )
        assert fake_pool.acquired == 0

    async def test_embedding_dimension_mismatch_raises(self, fake_pool, field_model) -> None:
        with pytest.raises(QueryError, match="expected 3"):
            await retrieve_contents(fake_pool, field_model, "nodevec_test", None, [1.0], 3)

    async def test_database_error_becomes_query_error(self, fake_pool, field_model) -> None:
        fake_pool.connection.fetch.side_effect = asyncpg.UndefinedTableError("no table")

        with pytest.raises(QueryError) as exc_info:
            await retrieve_contents(
                fake_pool, field_model, "nodevec_test", None, [1.0, 0.0, 0.0], 3
            )

        assert exc_info.value.statement == "select"
        assert fake_pool.released == 1
