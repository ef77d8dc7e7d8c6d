"""EPUB file parser - extracts a Book of chapters made of text lines."""

import logging
import re

from ebooklib import epub
from bs4 import BeautifulSoup

from narratore.models import Book, Chapter

logger = logging.getLogger(__name__)

# Block elements whose text becomes one narration line each
LEAF_TAGS = ["p", "h1", "h2", "h3", "h4", "h5", "h6", "li", "blockquote"]


class EpubParser:
    """Parse an EPUB file into a Book with chapters in spine (reading) order."""

    def __init__(self, epub_path: str):
        self.epub_path = epub_path
        self._book: epub.EpubBook | None = None

    def parse(self) -> Book:
        """Parse the EPUB and return the book.

        Raises:
            ValueError: If the EPUB contains no readable chapter.
        """
        self._book = epub.read_epub(self.epub_path)
        title = self._book.get_metadata("DC", "title")
        author = self._book.get_metadata("DC", "creator")
        return Book(
            title=title[0][0] if title else "Sconosciuto",
            author=author[0][0] if author else "Sconosciuto",
            chapters=self._extract_chapters(),
        )

    def _extract_chapters(self) -> list[Chapter]:
        chapters = []

        for item_id, _ in self._book.spine:
            item = self._book.get_item_with_id(item_id)
            if item is None:
                continue

            html_content = item.get_body_content()
            if not html_content:
                continue

            soup = BeautifulSoup(html_content, "lxml")
            lines = self._html_to_lines(soup)
            if not lines:
                logger.debug("Saltato elemento vuoto: %s", item_id)
                continue

            number = len(chapters) + 1
            title = self._extract_title(soup) or f"Chapter {number}"
            chapters.append(Chapter(number=number, title=title, lines=lines))

        if not chapters:
            raise ValueError(f"Nessun capitolo trovato in {self.epub_path}")

        logger.info("Estratti %d capitoli da '%s'", len(chapters), self.epub_path)
        return chapters

    @staticmethod
    def _html_to_lines(soup: BeautifulSoup) -> list[str]:
        """One line per leaf block element, blank ones dropped."""
        for tag in soup(["script", "style", "nav", "aside", "figure"]):
            tag.decompose()

        leaves = soup.find_all(LEAF_TAGS)
        if leaves:
            # Skip tags that contain block children, their text would be duplicated
            texts = [
                tag.get_text(" ", strip=True)
                for tag in leaves
                if not tag.find(LEAF_TAGS)
            ]
        else:
            texts = soup.get_text(separator="\n", strip=True).split("\n")

        lines = []
        for text in texts:
            text = re.sub(r"\s+", " ", text.replace("\u00A0", " ")).strip()
            if text:
                lines.append(text)
        return lines

    @staticmethod
    def _extract_title(soup: BeautifulSoup) -> str | None:
        """Try to extract a chapter title from headings."""
        for tag_name in ["h1", "h2", "h3", "title"]:
            tag = soup.find(tag_name)
            if tag:
                title = tag.get_text(strip=True)
                if title:
                    return title
        return None
