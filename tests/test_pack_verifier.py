import json
from pathlib import Path

import pytest
from PIL import Image

from spritecatalog.core import AnimatedSprite, SpritePack, SpriteRect, StaticSprite
from spritecatalog.core.errors import FetchError
from spritecatalog.core.pack_verifier import (
    BACKEND_UNAVAILABLE_WARNING,
    PackVerifier,
    check_bounds,
    verify_definition_file,
    verify_many,
)
from spritecatalog.utils.image_tools import PillowImageBackend

SHEET = "Tilemap/tilemap_packed.png"


def make_pack(sprites, tile_size=16, primary_sheet=SHEET) -> SpritePack:
    return SpritePack(
        id="tiny-dungeon",
        name="Tiny Dungeon",
        download_url="https://example.com/tiny.zip",
        tile_size=tile_size,
        primary_sheet=primary_sheet,
        sprites=sprites,
    )


def test_sprite_inside_sheet_is_valid(fake_backend, pack_dir):
    fake_backend.sizes["tilemap_packed.png"] = (16, 16)
    report = PackVerifier(image_backend=fake_backend).verify(make_pack({"a": StaticSprite(SpriteRect(0, 0))}), pack_dir)
    assert report.valid is True
    assert report.sprite_count == 1
    assert report.errors == []


def test_sheet_too_small_reports_one_bounds_error(fake_backend, pack_dir):
    fake_backend.sizes["tilemap_packed.png"] = (15, 15)
    report = PackVerifier(image_backend=fake_backend).verify(make_pack({"a": StaticSprite(SpriteRect(0, 0))}), pack_dir)
    assert report.valid is False
    assert report.errors == ["a: out of bounds (0,0 16x16)"]
    # the preview crop of the same sprite fails too, which is only a warning
    assert report.warnings == ["Failed to extract a: bad extract area"]


def test_animated_frame_errors_name_the_frame(fake_backend, pack_dir):
    fake_backend.sizes["tilemap_packed.png"] = (32, 16)
    sprite = AnimatedSprite(frames=[SpriteRect(0, 0), SpriteRect(20, 0)])
    report = PackVerifier(image_backend=fake_backend).verify(make_pack({"walk": sprite}), pack_dir)
    assert report.errors == ["walk frame 1: out of bounds (20,0 16x16)"]
    assert report.valid is False


def test_bounds_checking_is_exhaustive():
    pack = make_pack(
        {
            "a": StaticSprite(SpriteRect(40, 0)),
            "b": StaticSprite(SpriteRect(0, 0)),
            "c": AnimatedSprite(frames=[SpriteRect(-1, 0), SpriteRect(0, 30, 8, 8)]),
        }
    )
    assert check_bounds(pack, 32, 32, 16) == [
        "a: out of bounds (40,0 16x16)",
        "c frame 0: out of bounds (-1,0 16x16)",
        "c frame 1: out of bounds (0,30 8x8)",
    ]


def test_structural_failure_stops_before_sheet_access(fake_backend):
    pack = SpritePack(id="", name="", download_url="", sprites={})
    verifier = PackVerifier(image_backend=fake_backend)
    report = verifier.verify(pack, Path("/does/not/exist"))
    assert report.valid is False
    assert report.sprite_count == 0
    assert len(report.errors) == 4
    assert fake_backend.composed == []


def test_missing_primary_sheet_is_a_warning(fake_backend, pack_dir):
    report = PackVerifier(image_backend=fake_backend).verify(
        make_pack({"a": StaticSprite(SpriteRect(0, 0))}, primary_sheet=None), pack_dir
    )
    assert report.valid is True
    assert report.warnings == ["No primarySheet defined, skipping image verification"]


def test_unresolved_sheet_is_an_error(fake_backend, pack_dir):
    report = PackVerifier(image_backend=fake_backend).verify(
        make_pack({"a": StaticSprite(SpriteRect(0, 0))}, primary_sheet="Sheets/missing.png"), pack_dir
    )
    assert report.valid is False
    assert report.errors == ["Primary sheet not found: Sheets/missing.png"]


def test_sheet_lookup_ignores_case(fake_backend, pack_dir):
    fake_backend.sizes["tilemap_packed.png"] = (16, 16)
    report = PackVerifier(image_backend=fake_backend).verify(
        make_pack({"a": StaticSprite(SpriteRect(0, 0))}, primary_sheet="tilemap/TILEMAP_PACKED.png"), pack_dir
    )
    assert report.valid is True


def test_missing_backend_degrades_with_one_warning(pack_dir):
    pack = make_pack({"a": StaticSprite(SpriteRect(500, 500))})
    report = PackVerifier(image_backend=None).verify(pack, pack_dir)
    assert report.valid is True
    assert report.warnings == [BACKEND_UNAVAILABLE_WARNING]


def test_undecodable_sheet_is_a_warning(fake_backend, pack_dir):
    report = PackVerifier(image_backend=fake_backend).verify(make_pack({"a": StaticSprite(SpriteRect(0, 0))}), pack_dir)
    assert report.valid is True
    assert len(report.warnings) == 1
    assert report.warnings[0].startswith("Image verification failed")


def test_preview_layout_uses_first_64_sprites_in_order(fake_backend, pack_dir, tmp_path):
    fake_backend.sizes["tilemap_packed.png"] = (16 * 70, 16)
    sprites = {f"s{i}": StaticSprite(SpriteRect(i * 16, 0)) for i in range(70)}
    verifier = PackVerifier(image_backend=fake_backend, preview_dir=tmp_path / "previews")
    report = verifier.verify(make_pack(sprites), pack_dir)

    assert report.valid is True
    assert report.sprite_count == 70
    assert report.preview_path == tmp_path / "previews" / "tiny-dungeon-preview.png"
    size, background, placements = fake_backend.composed[0]
    assert size == (512, 512)
    assert background == (40, 40, 40, 255)
    assert len(placements) == 64
    first, _, _ = placements[0]
    assert (first.width, first.height) == (60, 60)
    assert [(left, top) for _, left, top in placements[:2]] == [(2, 2), (66, 2)]
    assert placements[8][1:] == (2, 66)
    assert placements[63][0].origin == (63 * 16, 0)


def test_preview_uses_first_frame_and_skips_failed_items(fake_backend, pack_dir):
    fake_backend.sizes["tilemap_packed.png"] = (64, 16)
    fake_backend.fail_fit_for.add((16, 0))
    sprites = {
        "anim": AnimatedSprite(frames=[SpriteRect(32, 0), SpriteRect(48, 0)]),
        "broken": StaticSprite(SpriteRect(16, 0)),
        "ok": StaticSprite(SpriteRect(0, 0)),
    }
    report = PackVerifier(image_backend=fake_backend).verify(make_pack(sprites), pack_dir)
    assert report.valid is True
    assert report.warnings == ["Failed to extract broken: resize failed"]
    size, _, placements = fake_backend.composed[0]
    assert size == (512, 64)
    assert [(img.origin, left) for img, left, _ in placements] == [((32, 0), 2), ((0, 0), 130)]


def test_compose_failure_is_a_warning(fake_backend, pack_dir):
    fake_backend.sizes["tilemap_packed.png"] = (16, 16)
    fake_backend.fail_compose = True
    report = PackVerifier(image_backend=fake_backend).verify(make_pack({"a": StaticSprite(SpriteRect(0, 0))}), pack_dir)
    assert report.valid is True
    assert report.warnings == ["Preview generation failed: composite failed"]
    assert report.preview_path is None


class _FailingFetcher:
    def fetch(self, pack_id, download_url):
        raise FetchError("connection refused")


class _RecordingFetcher:
    def __init__(self, directory):
        self.directory = directory
        self.calls = []

    def fetch(self, pack_id, download_url):
        self.calls.append((pack_id, download_url))
        return self.directory


def test_download_failure_is_terminal(fake_backend):
    verifier = PackVerifier(fetcher=_FailingFetcher(), image_backend=fake_backend)
    report = verifier.verify(make_pack({"a": StaticSprite(SpriteRect(0, 0))}))
    assert report.valid is False
    assert report.errors == ["Download failed: connection refused"]


def test_fetcher_supplies_pack_dir(fake_backend, pack_dir):
    fake_backend.sizes["tilemap_packed.png"] = (16, 16)
    fetcher = _RecordingFetcher(pack_dir)
    report = PackVerifier(fetcher=fetcher, image_backend=fake_backend).verify(make_pack({"a": StaticSprite(SpriteRect(0, 0))}))
    assert report.valid is True
    assert fetcher.calls == [("tiny-dungeon", "https://example.com/tiny.zip")]


def test_verify_without_dir_or_fetcher_is_a_usage_error():
    with pytest.raises(ValueError):
        PackVerifier().verify(make_pack({"a": StaticSprite(SpriteRect(0, 0))}))


def test_invalid_definition_file_reports_structural_error(tmp_path, fake_backend):
    path = tmp_path / "broken.json"
    path.write_text("[", encoding="utf-8")
    report = verify_definition_file(path, PackVerifier(image_backend=fake_backend), tmp_path)
    assert report.valid is False
    assert report.errors[0].startswith("Invalid JSON")


def test_report_wire_shape():
    from spritecatalog.core import VerificationReport

    report = VerificationReport(valid=False, sprite_count=2, errors=["x"], warnings=[], preview_path=Path("p.png"))
    assert report.to_dict() == {
        "valid": False,
        "spriteCount": 2,
        "errors": ["x"],
        "warnings": [],
        "previewPath": "p.png",
    }


def test_pillow_backend_end_to_end(tmp_path):
    pack_root = tmp_path / "cache" / "tiny-dungeon"
    (pack_root / "Tilemap").mkdir(parents=True)
    sheet = Image.new("RGBA", (32, 16), (0, 0, 0, 0))
    sheet.paste((255, 0, 0, 255), (0, 0, 16, 16))
    sheet.paste((0, 0, 255, 255), (16, 0, 32, 16))
    sheet.save(pack_root / "Tilemap" / "tilemap_packed.png")

    definition = tmp_path / "tiny-dungeon.json"
    definition.write_text(
        json.dumps(
            {
                "id": "tiny-dungeon",
                "name": "Tiny Dungeon",
                "downloadUrl": "https://example.com/tiny.zip",
                "tileSize": 16,
                "primarySheet": SHEET,
                "sprites": {
                    "red": {"x": 0, "y": 0},
                    "blue": {"frames": [{"x": 16, "y": 0}, {"x": 24, "y": 0}]},
                },
            }
        ),
        encoding="utf-8",
    )

    verifier = PackVerifier(image_backend=PillowImageBackend(), preview_dir=tmp_path)
    report = verify_definition_file(definition, verifier, pack_root)

    assert report.errors == ["blue frame 1: out of bounds (24,0 16x16)"]
    assert report.warnings == []
    assert report.preview_path.exists()
    with Image.open(report.preview_path) as preview:
        assert preview.size == (512, 64)
        assert preview.getpixel((32, 32)) == (255, 0, 0, 255)
        assert preview.getpixel((96, 32)) == (0, 0, 255, 255)
        assert preview.getpixel((200, 32)) == (40, 40, 40, 255)


@pytest.mark.parametrize(
    "overrides",
    [{"tileSize": "sixteen"}, {"tileSize": -16}, {"sprites": {"a": {"frames": [{"x": 0, "y": 0}], "fps": "fast"}}}],
)
def test_bad_pack_values_become_report_errors(tmp_path, fake_backend, overrides):
    payload = {"id": "p", "name": "P", "downloadUrl": "u", "primarySheet": SHEET, "sprites": {"a": {"x": 20, "y": 20}}}
    path = tmp_path / "p.json"
    path.write_text(json.dumps({**payload, **overrides}), encoding="utf-8")
    report = verify_definition_file(path, PackVerifier(image_backend=fake_backend), tmp_path)
    assert report.valid is False
    assert len(report.errors) == 1


def test_verify_many_builds_a_verifier_per_definition(tmp_path, fake_backend, pack_dir):
    good = tmp_path / "good.json"
    good.write_text(
        json.dumps({"id": "p", "name": "P", "downloadUrl": "u", "primarySheet": SHEET, "sprites": {"a": {"x": 0, "y": 0}}}),
        encoding="utf-8",
    )
    broken = tmp_path / "broken.json"
    broken.write_text("{", encoding="utf-8")
    fake_backend.sizes["tilemap_packed.png"] = (16, 16)
    built = []

    def factory(path):
        built.append(path)
        return PackVerifier(fetcher=_RecordingFetcher(pack_dir), image_backend=fake_backend)

    reports = verify_many([good, broken], factory)

    assert built == [good, broken]
    assert list(reports) == [good, broken]
    assert reports[good].valid is True
    assert reports[broken].errors[0].startswith("Invalid JSON")
