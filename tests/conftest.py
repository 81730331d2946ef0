import json

import pytest


class FakeClock:
    """Manually advanced replacement for time.time and time.monotonic."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeResponse:
    """Streamed response; each chunk may advance a FakeClock to simulate a slow server."""

    def __init__(
        self,
        text: str = "",
        status_code: int = 200,
        headers: dict | None = None,
        encoding: str | None = "utf-8",
        chunks: list[bytes] | None = None,
        clock=None,
        chunk_delay: float = 0.0,
        error: Exception | None = None,
    ):
        self.status_code = status_code
        self.headers = headers if headers is not None else {"Content-Type": "text/html; charset=utf-8"}
        self.encoding = encoding
        self.chunks = chunks if chunks is not None else [text.encode("utf-8")]
        self.clock = clock
        self.chunk_delay = chunk_delay
        self.error = error
        self.closed = False

    def iter_content(self, chunk_size=1):
        for chunk in self.chunks:
            if self.clock is not None:
                self.clock.advance(self.chunk_delay)
            yield chunk
        if self.error is not None:
            raise self.error

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


class FakeSession:
    """Stands in for requests.Session; records every GET."""

    def __init__(self, response=None, error: Exception | None = None):
        self.response = response or FakeResponse()
        self.error = error
        self.calls = []
        self.closed = False

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


def page(*blocks) -> str:
    """Builds an HTML page with one JSON-LD script per block."""
    scripts = []
    for block in blocks:
        # Pages escape "</" inside JSON-LD so the script block is not cut short
        text = block if isinstance(block, str) else json.dumps(block).replace("</", "<\\/")
        scripts.append(f'<script type="application/ld+json">{text}</script>')
    return (
        "<!DOCTYPE html><html><head><title>Recipe</title>"
        + "".join(scripts)
        + "</head><body><h1>Recipe</h1></body></html>"
    )


TEA_RECIPE = {
    "@context": "https://schema.org",
    "@type": "Recipe",
    "name": "Tea",
    "recipeIngredient": ["Water", "Tea bag"],
    "recipeInstructions": ["Boil water", "Steep tea"],
}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tea_page():
    return page(TEA_RECIPE)
