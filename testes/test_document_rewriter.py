import os
import sys
from datetime import datetime

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest
pytest.importorskip("bs4")

from fakes import FakeCatalog, FakeWordPress, image, meta

from gallery_converter.extractors.blocks import locate_tree_nodes
from gallery_converter.migrators.document_rewriter import REJECTED, REWRITTEN, UNCHANGED, DocumentRewriter
from gallery_converter.migrators.gallery_importer import NOTHING_IMPORTED, GalleryImporter
from gallery_converter.models.conversion import Document
from gallery_converter.parsers.block_parser import parse_blocks


def image_block(media_id):
    return (
        f'<!-- wp:image {{"id":{media_id}}} -->'
        f'<figure class="wp-block-image"><img src="img{media_id}.jpg" alt=""/></figure>'
        "<!-- /wp:image -->"
    )


def gallery_block(*inner):
    return '<!-- wp:gallery {"columns":2} -->' + "".join(inner) + "<!-- /wp:gallery -->"


def reference(gallery_id):
    return (
        f'<!-- wp:imagely/main-block {{"content":"[imagely id=\\u0022{gallery_id}\\u0022]"}} -->'
        f'[imagely id="{gallery_id}"]'
        "<!-- /wp:imagely/main-block -->"
    )


@pytest.fixture
def wp():
    ids = (1, 2, 3, 4)
    return FakeWordPress(media={i: meta(i) for i in ids}, files={i: image(i) for i in ids})


def rewriter_for(wp, catalog):
    importer = GalleryImporter(
        catalog=catalog, source=wp, library=wp, documents=wp, clock=lambda: datetime(2024, 1, 31, 10, 15, 0)
    )
    return DocumentRewriter(importer, wp)


def test_document_without_galleries_is_unchanged(wp):
    catalog = FakeCatalog()
    text = "<!-- wp:paragraph --><p>[imagely id=\"5\"]</p><!-- /wp:paragraph -->"
    outcome = rewriter_for(wp, catalog).rewrite(Document(id=1, title="t", text=text))

    assert outcome.state == UNCHANGED
    assert outcome.text == text
    assert catalog.calls == []


def test_inline_tag_is_replaced_in_place(wp):
    text = 'Hello [b]world[/b]\n[gallery ids="1,2"]\n<p>tail &amp; more</p>'
    outcome = rewriter_for(wp, FakeCatalog()).rewrite(Document(id=7, title="Trip", text=text))

    assert outcome.state == REWRITTEN
    assert outcome.changed
    assert outcome.text == 'Hello [b]world[/b]\n[imagely id="101"]\n<p>tail &amp; more</p>'
    assert outcome.gallery_ids == [101]


def test_identical_inline_tags_each_get_their_own_gallery(wp):
    text = '[gallery ids="1"] and [gallery ids="1"]'
    outcome = rewriter_for(wp, FakeCatalog()).rewrite(Document(id=7, title="Trip", text=text))
    assert outcome.text == '[imagely id="101"] and [imagely id="102"]'


def test_rewriting_twice_is_a_no_op(wp):
    catalog = FakeCatalog()
    rewriter = rewriter_for(wp, catalog)
    first = rewriter.rewrite(Document(id=7, title="Trip", text='[gallery ids="1"]' + gallery_block(image_block(2))))
    calls_after_first = list(catalog.calls)

    second = rewriter.rewrite(Document(id=7, title="Trip", text=first.text))
    assert second.state == UNCHANGED
    assert second.text == first.text
    assert catalog.calls == calls_after_first


def test_failed_inline_import_rejects_document(wp):
    catalog = FakeCatalog(fail_uploads={"img1.jpg"})
    text = '[gallery ids="2"] middle [gallery ids="1"] end'
    outcome = rewriter_for(wp, catalog).rewrite(Document(id=7, title="Trip", text=text))

    assert outcome.state == REJECTED
    assert not outcome.changed
    assert outcome.message == NOTHING_IMPORTED
    assert outcome.errors == ["Failed to import image: img1.jpg"]
    assert catalog.deleted == [102]


def test_empty_inline_tag_is_left_alone(wp):
    text = '[gallery ids="99"]'
    outcome = rewriter_for(wp, FakeCatalog()).rewrite(Document(id=7, title="Trip", text=text))
    assert outcome.state == UNCHANGED
    assert outcome.text == text


def test_block_gallery_becomes_reference_block(wp):
    text = "<p>a</p>" + gallery_block(image_block(1), image_block(2)) + "<p>b</p>"
    catalog = FakeCatalog()
    outcome = rewriter_for(wp, catalog).rewrite(Document(id=7, title="Trip", text=text))

    assert outcome.state == REWRITTEN
    assert outcome.text == "<p>a</p>" + reference(101) + "<p>b</p>"
    assert catalog.galleries[101].title == "Trip-7-Converted-2024-01-31 10:15:00"
    # the block markup is backed up before its gallery is created
    assert wp.backups[0][2] == gallery_block(image_block(1), image_block(2))


def test_failing_block_does_not_stop_its_siblings(wp):
    catalog = FakeCatalog(fail_uploads={"img1.jpg"})
    text = gallery_block(image_block(1)) + gallery_block(image_block(2))
    outcome = rewriter_for(wp, catalog).rewrite(Document(id=7, title="Trip", text=text))

    assert outcome.state == REWRITTEN
    assert outcome.text == gallery_block(image_block(1)) + reference(102)
    assert outcome.errors == ["Failed to import image: img1.jpg"]


def test_children_of_an_empty_gallery_are_still_converted(wp):
    nested = gallery_block(image_block(3))
    outer = gallery_block("<!-- wp:group -->" + nested + "<!-- /wp:group -->")
    text = gallery_block(image_block(4)) + outer
    outcome = rewriter_for(wp, FakeCatalog()).rewrite(Document(id=7, title="Trip", text=text))

    assert outcome.state == REWRITTEN
    assert outcome.gallery_ids == [101, 102]
    blocks = parse_blocks(outcome.text)
    assert blocks[0].name == "imagely/main-block"
    assert blocks[1].name == "core/gallery"
    assert blocks[1].inner_blocks[0].inner_blocks[0].name == "imagely/main-block"


def test_inline_pass_runs_before_block_pass(wp):
    text = '<!-- wp:shortcode -->[gallery ids="1"]<!-- /wp:shortcode -->' + gallery_block(image_block(2))
    outcome = rewriter_for(wp, FakeCatalog()).rewrite(Document(id=7, title="Trip", text=text))

    assert outcome.gallery_ids == [101, 102]
    assert outcome.text.startswith('<!-- wp:shortcode -->[imagely id="101"]<!-- /wp:shortcode -->')
    assert outcome.text.endswith(reference(102))


def test_block_pass_follows_locator_order(wp):
    nested = gallery_block(image_block(3))
    text = (
        gallery_block(image_block(1))
        + gallery_block("<!-- wp:group -->" + nested + "<!-- /wp:group -->", image_block(2))
    )
    expected = [construct.raw_content for construct in locate_tree_nodes(parse_blocks(text))]

    # every upload fails, so nothing is replaced and each gallery is attempted
    catalog = FakeCatalog(fail_uploads={"img1.jpg", "img2.jpg", "img3.jpg"})
    rewriter_for(wp, catalog).rewrite(Document(id=7, title="Trip", text=text))

    assert [content for _, _, content in wp.backups] == expected
    assert len(expected) == 3


def test_unrelated_block_attributes_survive_conversion(wp):
    paragraph = '<!-- wp:paragraph {"note":"C:\\\\"} --><p>path</p><!-- /wp:paragraph -->'
    outcome = rewriter_for(wp, FakeCatalog()).rewrite(
        Document(id=7, title="Trip", text=paragraph + gallery_block(image_block(1)))
    )

    assert outcome.state == REWRITTEN
    assert parse_blocks(outcome.text)[0].attrs == {"note": "C:\\"}
