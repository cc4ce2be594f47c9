from scriptorium.infrastructure.http.viewer_cache import ViewerResponseCache


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_only_main_frame_pdf_responses_are_kept() -> None:
    cache = ViewerResponseCache()
    assert not cache.observe("p1", "https://x.test/a.html", content_type="text/html")
    assert not cache.observe(
        "p1",
        "https://x.test/frame.pdf",
        content_type="application/pdf",
        resource_type="sub_frame",
    )
    assert cache.latest("p1") is None

    assert cache.observe(
        "p1",
        "https://x.test/a.pdf",
        content_type="application/pdf; charset=binary",
        content_disposition='inline; filename="a.pdf"',
    )
    latest = cache.latest("p1")
    assert latest is not None
    assert latest.url == "https://x.test/a.pdf"
    assert latest.content_disposition == 'inline; filename="a.pdf"'


def test_latest_response_replaces_previous_one() -> None:
    cache = ViewerResponseCache()
    cache.observe("p1", "https://x.test/a.pdf", content_type="application/pdf")
    cache.observe("p1", "https://x.test/b.pdf", content_type="application/x-pdf")
    assert cache.latest("p1").url == "https://x.test/b.pdf"
    assert len(cache) == 1


def test_entries_expire_and_can_be_forgotten() -> None:
    clock = _Clock()
    cache = ViewerResponseCache(maxsize=10, ttl_seconds=60, timer=clock)
    cache.observe("p1", "https://x.test/a.pdf", content_type="application/pdf")
    cache.observe("p2", "https://x.test/b.pdf", content_type="application/pdf")

    cache.forget("p2")
    cache.forget("missing")
    assert cache.latest("p2") is None

    clock.now += 61
    assert cache.latest("p1") is None


def test_cache_is_bounded_by_size() -> None:
    cache = ViewerResponseCache(maxsize=2)
    for index in range(5):
        cache.observe(f"p{index}", f"https://x.test/{index}.pdf", content_type="application/pdf")
    assert len(cache) == 2
