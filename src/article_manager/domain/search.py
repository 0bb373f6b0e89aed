"""Multi-keyword article matching.

A search phrase is trimmed and split on runs of whitespace. An article
matches when every token occurs, case-insensitively, somewhere in its title
or its summary. Tokens are plain substrings; characters such as ``+``, ``%``
or ``_`` carry no pattern meaning.
"""

from collections.abc import Iterable

from article_manager.domain.article import Article


def tokenize_keyword(keyword: str | None) -> list[str]:
    """Split a search phrase into tokens.

    Returns an empty list for ``None``, empty or whitespace-only input.
    """
    if not keyword:
        return []
    return keyword.split()


def matches(article: Article, tokens: Iterable[str]) -> bool:
    """Check whether every token appears in the title or summary."""
    title = article.title.casefold()
    summary = article.summary.casefold()
    for token in tokens:
        needle = token.casefold()
        if needle not in title and needle not in summary:
            return False
    return True


def newest_first(articles: Iterable[Article]) -> list[Article]:
    """Order by creation time descending, breaking ties by id descending."""
    return sorted(articles, key=lambda a: (a.created_at, a.id), reverse=True)


def search_articles(articles: Iterable[Article], keyword: str | None) -> list[Article]:
    """Filter and order articles for a search phrase."""
    tokens = tokenize_keyword(keyword)
    return newest_first(a for a in articles if matches(a, tokens))
