from site_lens.parser.html_parser import parse_document


def test_extracts_title_canonical_and_links():
    html = """
    <html><head>
      <title>  Hello World </title>
      <link rel="stylesheet" href="/style.css">
      <link rel="canonical" href="/canonical-page">
    </head><body>
      <a href="/one">1</a>
      <a href="two#x">2</a>
      <a href="#local">local</a>
      <a href="mailto:a@b.c">mail</a>
      <a>no href</a>
      <map><area href="/area-link"></map>
    </body></html>
    """
    info = parse_document(html, "https://example.com/dir/page")
    assert info.title == "Hello World"
    assert info.canonical == "https://example.com/canonical-page"
    assert info.links == [
        "https://example.com/one",
        "https://example.com/dir/two#x",
        "#local",
        "mailto:a@b.c",
        "https://example.com/area-link",
    ]


def test_missing_title_and_canonical():
    info = parse_document("<html><body><p>nothing</p></body></html>", "https://example.com/")
    assert info.title == ""
    assert info.canonical is None
    assert info.links == []


def test_base_href_changes_resolution():
    html = '<html><head><base href="https://cdn.example.com/root/"></head><body><a href="x">x</a></body></html>'
    info = parse_document(html, "https://example.com/page")
    assert info.links == ["https://cdn.example.com/root/x"]


def test_without_base_url_links_stay_raw():
    info = parse_document('<a href="/raw">r</a>')
    assert info.links == ["/raw"]
