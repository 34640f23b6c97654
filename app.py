from __future__ import annotations

import argparse
import asyncio
import logging
import webbrowser
from typing import Sequence

import requests
from rich.markup import escape
from rich.text import Text
from textual import work
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.logging import TextualHandler
from textual.screen import Screen
from textual.timer import Timer
from textual.widgets import Button, Footer, Header, Input, OptionList, Static

from config import ADVANCE_THRESHOLD, BATCH_SIZE, DEFAULT_LANGUAGE, SEARCH_DEBOUNCE_S, SUBCAT_SAMPLE_SIZE
from feed import FeedController
from languages import LANGUAGES, Language, get_language
from wikipedia import ArticleRecord, WikiApiError, WikiClient, normalize_category

logger = logging.getLogger(__name__)


def position_label(index: int, total: int, loading: bool = False) -> str:
    suffix = "  Loading More..." if loading else ""
    return f"{index + 1} / {total}{suffix}"


def render_article(article: ArticleRecord, image_cached: bool = False) -> str:
    thumb = article.thumbnail
    image_note = " (cached)" if image_cached else ""
    return (
        f"[b]{escape(article.display_title)}[/b]\n\n"
        f"{escape(article.extract)}\n\n"
        f"[dim]Image: {thumb.width}x{thumb.height}{image_note} {escape(thumb.source)}[/dim]\n"
        f"[dim]{escape(article.url)}[/dim]"
    )


class CategoryScreen(Screen):
    BINDINGS = [("escape", "app.quit", "Quit")]

    def __init__(self, client: WikiClient) -> None:
        super().__init__()
        self.client = client
        self.chosen: list[str] = []
        self.results: list[str] = []
        self._debounce: Timer | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="categories"):
            yield Static("Wiki Feed", id="title")
            yield Static("Pick the categories your feed draws from.", id="subtitle")
            yield Input(placeholder="Search categories...", id="search")
            yield Static("", id="search-status")
            yield OptionList(id="results")
            yield Static("Chosen: none", id="chosen")
            with Horizontal(id="category-buttons"):
                yield Button("Start Feed", id="start", variant="success", disabled=True)
                yield Button("Remove Last", id="remove")
                yield Button("Quit", id="quit", variant="error")
        yield Footer()

    def on_input_changed(self, event: Input.Changed) -> None:
        if self._debounce is not None:
            self._debounce.stop()
        term = event.value
        self._debounce = self.set_timer(SEARCH_DEBOUNCE_S, lambda: self.search(term))

    @work(exclusive=True, group="search")
    async def search(self, term: str) -> None:
        status = self.query_one("#search-status", Static)
        if not term.strip():
            status.update("")
            self._show_results([])
            return

        status.update("Searching...")
        try:
            titles = await asyncio.to_thread(self.client.search_categories, term)
        except (requests.RequestException, WikiApiError, ValueError) as e:
            logger.warning("Category search failed: %s", e)
            status.update(f"[red]Search failed: {escape(str(e))}[/]")
            self._show_results([])
            return
        status.update("" if titles else "No categories found.")
        self._show_results(titles)

    def _show_results(self, titles: list[str]) -> None:
        self.results = [title for title in titles if title not in self.chosen]
        options = self.query_one("#results", OptionList)
        options.clear_options()
        options.add_options([Text(title) for title in self.results])

    def _refresh_chosen(self) -> None:
        label = ", ".join(self.chosen) if self.chosen else "none"
        self.query_one("#chosen", Static).update(f"Chosen: {escape(label)}")
        self.query_one("#start", Button).disabled = not self.chosen

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        title = self.results[event.option_index]
        self.chosen.append(title)
        self._show_results(self.results)
        self._refresh_chosen()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "start" and self.chosen:
            self.app.push_screen(FeedScreen(self.app.make_controller(self.chosen)))
        elif event.button.id == "remove" and self.chosen:
            self.chosen.pop()
            self._refresh_chosen()
        elif event.button.id == "quit":
            self.app.exit()


class FeedScreen(Screen):
    BINDINGS = [
        ("j,down", "next", "Next"),
        ("k,up", "previous", "Previous"),
        ("o", "open", "Open"),
        ("escape", "back", "Back"),
    ]

    def __init__(self, controller: FeedController) -> None:
        super().__init__()
        self.controller = controller
        self.index = 0
        self._fetching = False

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="feed"):
            yield Static("Loading Articles...", id="card")
            yield Static("", id="position")
        yield Footer()

    def on_mount(self) -> None:
        self.load_more()
        self.set_interval(0.5, self._render_position)

    @work(group="feed")
    async def load_more(self) -> None:
        if self._fetching:
            return
        self._fetching = True
        self._render_card()
        try:
            if self.controller.articles:
                await self.controller.advance()
            else:
                await self.controller.start()
        finally:
            self._fetching = False
        self._render_card()

    def _render_card(self) -> None:
        articles = self.controller.articles
        card = self.query_one("#card", Static)
        position = self.query_one("#position", Static)
        if not articles:
            card.update("Loading Articles..." if self._fetching else "No articles found for these categories.")
            position.update("")
            return

        article = articles[self.index]
        cached = self.controller.details.thumbnails.get(article.thumbnail.source) is not None
        card.update(render_article(article, image_cached=cached))
        self._render_position()

    def _render_position(self) -> None:
        articles = self.controller.articles
        if not articles:
            return
        loading = self._fetching or self.controller.loading
        self.query_one("#position", Static).update(position_label(self.index, len(articles), loading))

    def action_next(self) -> None:
        articles = self.controller.articles
        if self.index < len(articles) - 1:
            self.index += 1
            self._render_card()
        if len(articles) - self.index <= ADVANCE_THRESHOLD:
            self.load_more()

    def action_previous(self) -> None:
        if self.index > 0:
            self.index -= 1
            self._render_card()

    def action_open(self) -> None:
        if self.controller.articles:
            webbrowser.open(self.controller.articles[self.index].url)

    def action_back(self) -> None:
        self.app.pop_screen()


class WikiFeedApp(App):
    CSS = """
    #categories, #feed {
        padding: 1 2;
    }

    #title {
        content-align: center middle;
        text-style: bold;
    }

    #subtitle {
        content-align: center middle;
        color: $text-muted;
        margin-bottom: 1;
    }

    #results {
        height: 12;
        border: solid $secondary;
    }

    #chosen {
        margin: 1 0;
    }

    #category-buttons {
        height: auto;
        margin-top: 1;
    }

    #card {
        border: solid $primary;
        padding: 1;
        overflow: auto;
    }

    #position {
        color: $text-muted;
        margin-top: 1;
    }
    """

    TITLE = "Wiki Feed"

    def __init__(
        self,
        language: Language,
        categories: Sequence[str] = (),
        batch_size: int = BATCH_SIZE,
        sample_size: int = SUBCAT_SAMPLE_SIZE,
    ) -> None:
        super().__init__()
        self.client = WikiClient(language)
        self.categories = list(categories)
        self.batch_size = batch_size
        self.sample_size = sample_size

    def make_controller(self, categories: Sequence[str]) -> FeedController:
        return FeedController(
            self.client,
            categories,
            batch_size=self.batch_size,
            sample_size=self.sample_size,
        )

    def on_mount(self) -> None:
        self.sub_title = self.client.language.name
        if self.categories:
            self.push_screen(FeedScreen(self.make_controller(self.categories)))
        else:
            self.push_screen(CategoryScreen(self.client))

    def on_unmount(self) -> None:
        self.client.close()


def configure_logging(level: str, log_file: str | None = None) -> None:
    handlers: list[logging.Handler] = [TextualHandler()]
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        handlers.append(file_handler)
    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level.upper())


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Endless feed of Wikipedia articles from chosen categories")
    parser.add_argument(
        "categories",
        nargs="*",
        help="Category titles to start with; the 'Category:' prefix is optional",
    )
    parser.add_argument("--lang", choices=sorted(LANGUAGES), default=DEFAULT_LANGUAGE)
    parser.add_argument("--batch-size", type=int, default=BATCH_SIZE)
    parser.add_argument("--sample-size", type=int, default=SUBCAT_SAMPLE_SIZE)
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error"],
    )
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging(args.log_level, args.log_file)
    WikiFeedApp(
        get_language(args.lang),
        categories=[normalize_category(title) for title in args.categories],
        batch_size=args.batch_size,
        sample_size=args.sample_size,
    ).run()


if __name__ == "__main__":
    main()
