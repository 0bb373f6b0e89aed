"""Tests for the domain entities and article search matching."""

from datetime import timedelta

import pytest

from article_manager.core.exceptions import ErrorKind, ValidationError
from article_manager.core.timeutil import utcnow
from article_manager.domain.article import Article
from article_manager.domain.book import Book, BookRecommendationCache, PurchaseLinks
from article_manager.domain.search import matches, search_articles, tokenize_keyword
from article_manager.domain.tag import Tag


def make_article(**overrides) -> Article:
    fields = {
        "title": "Go言語入門",
        "url": "https://example.com/go",
        "summary": "Goの基本文法を解説",
        "tags": ["go"],
        "memo": "",
    }
    fields.update(overrides)
    return Article.new(**fields)


# =============================================================================
# Article Tests
# =============================================================================


class TestArticleNew:
    """Tests for Article.new validation."""

    def test_valid_article(self) -> None:
        article = make_article(tags=["go", "backend"], memo="memo")
        assert article.id == 0
        assert article.tags == ["go", "backend"]
        assert article.created_at == article.updated_at

    def test_boundary_lengths_accepted(self) -> None:
        article = make_article(title="a" * 255, summary="s" * 1000, tags=["t" * 50])
        assert len(article.title) == 255

    @pytest.mark.parametrize(
        ("overrides", "field", "message"),
        [
            ({"title": ""}, "title", "title is required"),
            ({"title": "a" * 256}, "title", "title must be 255 characters or less"),
            ({"url": ""}, "url", "url is required"),
            ({"url": "ftp://example.com"}, "url", "url must start with http:// or https://"),
            ({"summary": ""}, "summary", "summary is required"),
            ({"summary": "s" * 1001}, "summary", "summary must be 1000 characters or less"),
            ({"tags": [""]}, "tags", "tag cannot be empty"),
            ({"tags": ["t" * 51]}, "tags", "each tag must be 50 characters or less"),
        ],
    )
    def test_invalid_fields(self, overrides, field, message) -> None:
        with pytest.raises(ValidationError) as exc_info:
            make_article(**overrides)
        assert exc_info.value.field == field
        assert exc_info.value.message == message
        assert exc_info.value.kind == ErrorKind.VALIDATION

    def test_duplicate_tags_collapsed_in_order(self) -> None:
        article = make_article(tags=["b", "a", "b"])
        assert article.tags == ["b", "a"]


class TestArticleUpdate:
    """Tests for Article.update."""

    def test_update_replaces_fields_and_advances_updated_at(self) -> None:
        article = make_article()
        created_at = article.created_at
        previous = article.updated_at

        article.update("新タイトル", "https://example.com/new", "新しい要約", ["x"], "m")

        assert article.title == "新タイトル"
        assert article.tags == ["x"]
        assert article.memo == "m"
        assert article.created_at == created_at
        assert article.updated_at > previous

    def test_failed_update_leaves_article_untouched(self) -> None:
        article = make_article()
        before = (article.title, article.url, article.summary, list(article.tags))
        updated_at = article.updated_at

        with pytest.raises(ValidationError):
            article.update("ok", "https://example.com", "", ["x"])

        assert (article.title, article.url, article.summary, article.tags) == before
        assert article.updated_at == updated_at


# =============================================================================
# Tag Tests
# =============================================================================


class TestTag:
    """Tests for Tag validation."""

    @pytest.mark.parametrize(
        ("name", "message"),
        [
            ("", "name is required"),
            ("   ", "name cannot be only whitespace"),
            ("n" * 51, "name must be 50 characters or less"),
        ],
    )
    def test_invalid_names(self, name: str, message: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            Tag.new(name)
        assert exc_info.value.message == message

    def test_rename(self) -> None:
        tag = Tag.new("python")
        tag.rename("go")
        assert tag.name == "go"
        assert tag.updated_at >= tag.created_at

    def test_rename_invalid_keeps_name(self) -> None:
        tag = Tag.new("python")
        with pytest.raises(ValidationError):
            tag.rename("")
        assert tag.name == "python"


# =============================================================================
# Book Tests
# =============================================================================


class TestBook:
    """Tests for Book and BookRecommendationCache."""

    def test_book_new_valid(self) -> None:
        book = Book.new(
            "リーダブルコード",
            "Dustin Boswell",
            isbn="4873115655",
            purchase_links=PurchaseLinks(amazon="https://www.amazon.co.jp/dp/4873115655"),
        )
        assert book.is_complete

    @pytest.mark.parametrize(
        ("kwargs", "field"),
        [
            ({"title": "", "author": "a"}, "title"),
            ({"title": "t" * 501, "author": "a"}, "title"),
            ({"title": "t", "author": ""}, "author"),
            ({"title": "t", "author": "a" * 256}, "author"),
            ({"title": "t", "author": "a", "isbn": "123"}, "isbn"),
            (
                {
                    "title": "t",
                    "author": "a",
                    "purchase_links": PurchaseLinks(amazon="amazon.co.jp/dp/1"),
                },
                "purchase_links",
            ),
        ],
    )
    def test_book_new_invalid(self, kwargs, field) -> None:
        with pytest.raises(ValidationError) as exc_info:
            Book.new(**kwargs)
        assert exc_info.value.field == field

    def test_is_complete_requires_non_blank_title_and_author(self) -> None:
        assert not Book(title="t", author="  ").is_complete
        assert not Book(title="", author="a").is_complete

    def test_cache_expires_after_ttl(self) -> None:
        now = utcnow()
        cache = BookRecommendationCache.new(
            [Book(title="t", author="a")], ttl=timedelta(hours=24), now=now
        )
        assert cache.expires_at == now + timedelta(hours=24)
        assert cache.is_valid(now + timedelta(hours=23, minutes=59))
        assert not cache.is_valid(now + timedelta(hours=24))
        assert not cache.is_persisted

    def test_cache_rejects_incomplete_book(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            BookRecommendationCache.new([Book(title="t", author="a"), Book(title="t")])
        assert "index 1" in exc_info.value.message

    def test_empty_cache(self) -> None:
        cache = BookRecommendationCache.empty()
        assert cache.books == []
        assert cache.is_valid()

    def test_book_dict_round_trip_keeps_links(self) -> None:
        book = Book(
            title="t",
            author="a",
            isbn="9784873115658",
            purchase_links=PurchaseLinks(rakuten="https://books.rakuten.co.jp/x"),
        )
        assert Book.from_dict(book.to_dict()) == book


# =============================================================================
# Search Tests
# =============================================================================


class TestSearch:
    """Tests for keyword tokenizing and matching."""

    @pytest.mark.parametrize(
        ("keyword", "tokens"),
        [
            (None, []),
            ("", []),
            ("   ", []),
            ("  Go  言語 ", ["Go", "言語"]),
            ("a\tb\nc", ["a", "b", "c"]),
        ],
    )
    def test_tokenize(self, keyword, tokens) -> None:
        assert tokenize_keyword(keyword) == tokens

    def test_all_tokens_must_match_title_or_summary(self) -> None:
        article = make_article(title="Go言語入門", summary="並行処理の基本")
        assert matches(article, ["go", "並行"])
        assert not matches(article, ["go", "rust"])

    def test_match_is_case_insensitive(self) -> None:
        article = make_article(title="FastAPI Tutorial")
        assert matches(article, ["fastapi", "TUTORIAL"])

    def test_wildcard_characters_are_literal(self) -> None:
        article = make_article(title="100% Python", summary="snake_case")
        assert matches(article, ["100%"])
        assert matches(article, ["snake_case"])
        assert not matches(article, ["c++"])

    def test_search_orders_newest_first_and_empty_returns_all(self) -> None:
        older = make_article(title="older")
        older.id = 1
        newer = make_article(title="newer")
        newer.id = 2
        newer.created_at = older.created_at + timedelta(seconds=1)

        assert [a.id for a in search_articles([older, newer], "")] == [2, 1]
        assert [a.id for a in search_articles([older, newer], "older")] == [1]

    def test_search_ties_broken_by_id(self) -> None:
        first = make_article()
        second = make_article()
        second.created_at = first.created_at
        first.id, second.id = 1, 2
        assert [a.id for a in search_articles([first, second], None)] == [2, 1]

    @pytest.mark.parametrize(
        ("keyword", "expected"),
        [
            ("Go言語 完全", ["Go言語完全ガイド"]),
            ("go", ["Go言語完全ガイド", "Go言語入門"]),
            ("GO", ["Go言語完全ガイド", "Go言語入門"]),
            ("入門", ["Python入門", "Go言語入門"]),
            ("ｇｏ", []),
        ],
    )
    def test_search_across_articles(self, keyword, expected) -> None:
        articles = []
        for article_id, title in enumerate(
            ["Go言語入門", "Go言語完全ガイド", "Python入門"], start=1
        ):
            article = make_article(title=title, summary="概要")
            article.id = article_id
            articles.append(article)
        base = articles[0].created_at
        for article in articles:
            article.created_at = base

        assert [a.title for a in search_articles(articles, keyword)] == expected
