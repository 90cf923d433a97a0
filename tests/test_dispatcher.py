"""
Format dispatcher tests

One test class per branch of the extension table: markup with layout,
templated HTML/XML, template-language pages, stylesheets and raw copies.
"""

import sys
from pathlib import Path

import pytest

from zs.lib.dispatcher import FormatDispatcher
from zs.lib.errors import CommandFailed, ParseError, RenderError

from conftest import plugin_write, source_write

LAYOUT = "<html><title>{{title}}</title><body>{{content}}</body></html>"


@pytest.fixture
def dispatcher(site, settings):
    return FormatDispatcher(site, settings, globals_={"site": "Example"})


def output_read(site: Path, name: str) -> str:
    return (site / ".pub" / name).read_text()


class TestMarkup:
    """.md / .mkd -> layout-wrapped HTML"""

    def test_layout_wrapping(self, site, dispatcher):
        plugin_write(site, "layout.html", LAYOUT, executable=False)
        source_write(site, "index.md", "title: Home\n\n# Hello {{title}}\n")

        dispatcher.build(Path("index.md"))

        html = output_read(site, "index.html")
        assert html.startswith("<html><title>Home</title><body>")
        assert "<h1>Hello Home</h1>" in html

    def test_returns_written_bytes(self, site, dispatcher):
        plugin_write(site, "layout.html", "{{content}}", executable=False)
        source_write(site, "index.md", "text")
        data = dispatcher.build(Path("index.md"))
        assert data == (site / ".pub" / "index.html").read_bytes()
        assert data == b"<p>text</p>"

    def test_mkd_extension_and_nested_dir(self, site, dispatcher):
        plugin_write(site, "layout.html", "{{content}}", executable=False)
        source_write(site, "blog/post.mkd", "*hi*")
        dispatcher.build(Path("blog/post.mkd"))
        assert output_read(site, "blog/post.html") == "<p><em>hi</em></p>"

    def test_globals_visible(self, site, dispatcher):
        plugin_write(site, "layout.html", "{{site}}: {{content}}", executable=False)
        source_write(site, "index.md", "x")
        dispatcher.build(Path("index.md"))
        assert output_read(site, "index.html") == "Example: <p>x</p>"

    def test_template_layout(self, site, dispatcher):
        plugin_write(site, "greet", 'printf "hi"')
        plugin_write(
            site,
            "layout.j2",
            "<title>${ title }</title>${ content }<footer>{{ greet }}</footer>",
            executable=False,
        )
        source_write(site, "index.md", "title: Home\n\nbody")
        dispatcher.resolver.plugins_scan()

        dispatcher.build(Path("index.md"))

        assert output_read(site, "index.html") == "<title>Home</title><p>body</p><footer>hi</footer>"

    def test_layout_from_header(self, site, dispatcher):
        plugin_write(site, "layout.html", "default", executable=False)
        plugin_write(site, "post.html", "post:{{content}}", executable=False)
        source_write(site, "a.md", "layout: post.html\n\nx")
        dispatcher.build(Path("a.md"))
        assert output_read(site, "a.html") == "post:<p>x</p>"

    def test_content_not_rescanned(self, site, dispatcher):
        """Macros produced by the body do not run again inside the layout"""
        plugin_write(site, "layout.html", "{{content}}", executable=False)
        source_write(site, "a.md", "lit: {{nope}}\n\n{{lit}}")
        dispatcher.build(Path("a.md"))
        assert output_read(site, "a.html") == "<p>{{nope}}</p>"

    def test_missing_layout(self, site, dispatcher):
        source_write(site, "index.md", "x")
        with pytest.raises(OSError):
            dispatcher.build(Path("index.md"))

    def test_layout_not_utf8(self, site, dispatcher):
        (site / ".zs" / "layout.html").write_bytes(b"\xff{{content}}")
        source_write(site, "index.md", "x")
        with pytest.raises(RenderError, match="UTF-8"):
            dispatcher.build(Path("index.md"))

    def test_code_highlighting(self, site, dispatcher):
        plugin_write(site, "layout.html", "{{content}}", executable=False)
        source_write(site, "code.md", "```python\nprint('hi')\n```\n")
        dispatcher.build(Path("code.md"))
        html = output_read(site, "code.html")
        assert "codehilite" in html
        assert "style=" in html

    @pytest.mark.skipif(sys.platform == "win32", reason="plugins are shell scripts")
    def test_failing_command_aborts(self, site, dispatcher):
        plugin_write(site, "layout.html", "{{content}}", executable=False)
        plugin_write(site, "bad", "exit 1")
        source_write(site, "index.md", "{{ bad }}")
        dispatcher.resolver.plugins_scan()
        with pytest.raises(CommandFailed):
            dispatcher.build(Path("index.md"))
        assert not (site / ".pub" / "index.html").exists()

    def test_unterminated_macro_aborts(self, site, dispatcher):
        plugin_write(site, "layout.html", "{{content}}", executable=False)
        source_write(site, "index.md", "oops {{ open")
        with pytest.raises(ParseError):
            dispatcher.build(Path("index.md"))


class TestTemplatedHtml:
    """.html / .xml -> macros expanded in place"""

    def test_html(self, site, dispatcher):
        source_write(site, "page.html", "title: About\n\n<h1>{{title}}</h1><p>{{file}}</p>")
        dispatcher.build(Path("page.html"))
        assert output_read(site, "page.html") == "<h1>About</h1><p>page.html</p>"

    def test_html_without_header(self, site, dispatcher):
        text = "<!doctype html>\n<html>\n\n<body>{{url}}</body></html>"
        source_write(site, "docs/index.html", text)
        dispatcher.build(Path("docs/index.html"))
        assert output_read(site, "docs/index.html") == text.replace("{{url}}", "docs/index.html")

    def test_xml_keeps_extension(self, site, dispatcher):
        source_write(site, "feed.xml", "<rss><title>{{site}}</title></rss>")
        dispatcher.build(Path("feed.xml"))
        assert output_read(site, "feed.xml") == "<rss><title>Example</title></rss>"
        assert not (site / ".pub" / "feed.html").exists()

    def test_output_override(self, site, dispatcher):
        source_write(site, "page.html", "output: .pub/moved.html\n\nx")
        dispatcher.build(Path("page.html"))
        assert output_read(site, "moved.html") == "x"


class TestTemplatePages:
    """.j2 -> jinja2, then command macros"""

    def test_render(self, site, dispatcher):
        plugin_write(site, "greet", 'printf "hi"')
        dispatcher.resolver.plugins_scan()
        source_write(
            site,
            "list.j2",
            "title: Things\n\n<h1>${ title }</h1>{% for n in [1, 2] %}<i>${ n }</i>{% endfor %}{{ greet }}",
        )

        dispatcher.build(Path("list.j2"))

        assert output_read(site, "list.html") == "<h1>Things</h1><i>1</i><i>2</i>hi"

    def test_template_error(self, site, dispatcher):
        source_write(site, "bad.j2", "{% for %}")
        with pytest.raises(RenderError):
            dispatcher.build(Path("bad.j2"))

    def test_expression_error(self, site, dispatcher):
        source_write(site, "div.j2", "${ 1 // 0 }")
        with pytest.raises(RenderError, match="ZeroDivisionError"):
            dispatcher.build(Path("div.j2"))


class TestStylesheets:
    """.scss -> .css"""

    def test_compile(self, site, dispatcher):
        source_write(site, "css/style.scss", "$c: red;\nbody { color: $c; }\n")
        dispatcher.build(Path("css/style.scss"))
        css = output_read(site, "css/style.css")
        assert "color: red" in css
        assert "$c" not in css

    def test_compile_error(self, site, dispatcher):
        source_write(site, "broken.scss", "body { color: $undefined; }\n")
        with pytest.raises(RenderError):
            dispatcher.build(Path("broken.scss"))


class TestRawCopy:
    """Unknown extensions are copied byte for byte"""

    def test_binary(self, site, dispatcher):
        data = bytes(range(256))
        (site / "img").mkdir()
        (site / "img" / "logo.bin").write_bytes(data)
        assert dispatcher.build(Path("img/logo.bin")) == data
        assert (site / ".pub" / "img" / "logo.bin").read_bytes() == data

    def test_extension_match_is_case_sensitive(self, site, dispatcher):
        text = "title: x\n\n{{title}}"
        source_write(site, "README.MD", text)
        dispatcher.build(Path("README.MD"))
        assert output_read(site, "README.MD") == text

    def test_no_extension(self, site, dispatcher):
        source_write(site, "CNAME", "example.com\n")
        dispatcher.build(Path("CNAME"))
        assert output_read(site, "CNAME") == "example.com\n"
