from job_scraper.page import PlaywrightPage


class RecordingPlaywrightPage:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def goto(self, url, **kwargs):
        self.calls.append(("goto", url, kwargs))

    def wait_for_selector(self, selector, **kwargs):
        self.calls.append(("wait_for_selector", selector, kwargs))

    def query_selector_all(self, selector):
        self.calls.append(("query_selector_all", selector))
        return ["card-1", "card-2"]

    def evaluate(self, *args):
        self.calls.append(("evaluate", args))
        return True


class RecordingElement:
    def __init__(self) -> None:
        self.clicks: list[dict] = []

    def click(self, **kwargs):
        self.clicks.append(kwargs)


def test_navigate_waits_for_network_idle_in_milliseconds() -> None:
    stub = RecordingPlaywrightPage()

    PlaywrightPage(stub).navigate("https://www.linkedin.com/jobs/search/?pageNum=1", 30.0)

    assert stub.calls == [
        (
            "goto",
            "https://www.linkedin.com/jobs/search/?pageNum=1",
            {"wait_until": "networkidle", "timeout": 30000},
        )
    ]


def test_wait_for_selector_returns_matching_elements() -> None:
    stub = RecordingPlaywrightPage()

    elements = PlaywrightPage(stub).wait_for_selector(".job-card-container", 10.0)

    assert elements == ["card-1", "card-2"]
    assert stub.calls == [
        ("wait_for_selector", ".job-card-container", {"timeout": 10000}),
        ("query_selector_all", ".job-card-container"),
    ]


def test_click_converts_timeout_to_milliseconds() -> None:
    element = RecordingElement()
    page = PlaywrightPage(RecordingPlaywrightPage())

    page.click(element, 5.0)
    page.click(element)

    assert element.clicks == [{"timeout": 5000}, {}]


def test_evaluate_forwards_argument_only_when_given() -> None:
    stub = RecordingPlaywrightPage()
    page = PlaywrightPage(stub)

    page.evaluate("() => 1")
    page.evaluate("(arg) => arg", {"fields": {}})

    assert stub.calls == [
        ("evaluate", ("() => 1",)),
        ("evaluate", ("(arg) => arg", {"fields": {}})),
    ]
