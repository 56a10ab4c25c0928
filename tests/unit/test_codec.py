"""Tests for field encoding and decoding."""

from __future__ import annotations

import json

import pytest

from rowmodel.codec import (
    coerce,
    decode_field,
    decode_row,
    encode_field,
    encode_row,
    get_value,
    set_value,
)
from rowmodel.errors import (
    FieldAccessError,
    FieldValueError,
    UnsavedModelError,
    UnsupportedFieldTypeError,
)
from rowmodel.registry import registry
from sample_models import Album, Artist, Credits, Genre, Note, Track


def _spec(cls, name):
    return registry.field(cls, name)


def _roundtrip(instance):
    cls = type(instance)
    row = encode_row(instance, registry.fields(cls))
    fresh = registry.instantiate(cls)
    decode_row(fresh, registry.fields(cls), row)
    return fresh


# ------------------------------------------------------------------
# encode
# ------------------------------------------------------------------


def test_encode_row_has_one_entry_per_column():
    row = encode_row(Album(title="Blue"), registry.fields(Album))
    assert list(row) == [
        "title", "year", "rating", "explicit", "genre", "tags", "credits", "artist",
    ]


def test_encode_row_skips_has_many():
    album = Album(tracks=[Track(name="x")])
    assert "tracks" not in encode_row(album, registry.fields(Album))


def test_encode_primitives_as_is():
    album = Album(title="Blue", year=1971, rating=4.5, explicit=True)
    row = encode_row(album, registry.fields(Album))
    assert (row["title"], row["year"], row["rating"], row["explicit"]) == ("Blue", 1971, 4.5, True)


def test_encode_enum_as_name():
    assert encode_field(Album(genre=Genre.FOLK), _spec(Album, "genre")) == "FOLK"


def test_encode_null_enum_as_null():
    assert encode_field(Album(genre=None), _spec(Album, "genre")) is None


def test_encode_enum_rejects_non_member():
    with pytest.raises(FieldValueError):
        encode_field(Album(genre="FOLK"), _spec(Album, "genre"))


def test_encode_belongs_to_stores_identity():
    album = Album()
    album._id = 7
    assert encode_field(Track(album=album), _spec(Track, "album")) == 7


def test_encode_null_belongs_to():
    assert encode_field(Track(album=None), _spec(Track, "album")) is None


def test_encode_belongs_to_unsaved_parent_is_programming_error():
    with pytest.raises(UnsavedModelError):
        encode_field(Track(album=Album()), _spec(Track, "album"))


def test_encode_has_many_directly_is_rejected():
    with pytest.raises(ValueError):
        encode_field(Album(), _spec(Album, "tracks"))


def test_encode_generic_as_json():
    album = Album(tags=["a", "b"], credits=Credits(producer="Joni", engineers=["Henry"]))
    assert json.loads(encode_field(album, _spec(Album, "tags"))) == ["a", "b"]
    assert json.loads(encode_field(album, _spec(Album, "credits"))) == {
        "producer": "Joni",
        "engineers": ["Henry"],
    }


def test_encode_generic_unsupported_names_field():
    with pytest.raises(UnsupportedFieldTypeError) as info:
        encode_field(Album(tags=[object()]), _spec(Album, "tags"))
    assert info.value.field == "tags"
    assert "tags" in str(info.value)


# ------------------------------------------------------------------
# decode
# ------------------------------------------------------------------


def test_roundtrip_every_column_kind():
    album = Album(
        title="Blue",
        year=1971,
        rating=4.5,
        explicit=True,
        genre=Genre.FOLK,
        tags=["a", "b"],
        credits=Credits(producer="Joni", engineers=["Henry"]),
    )
    loaded = _roundtrip(album)
    assert loaded.title == "Blue"
    assert loaded.year == 1971
    assert loaded.rating == 4.5
    assert loaded.explicit is True
    assert loaded.genre is Genre.FOLK
    assert loaded.tags == ["a", "b"]
    assert loaded.credits == Credits(producer="Joni", engineers=["Henry"])


def test_roundtrip_null_values():
    loaded = _roundtrip(Album(genre=None, credits=None))
    assert loaded.genre is None
    assert loaded.credits is None


def test_decode_sqlite_integer_as_bool():
    album = Album()
    decode_field(album, _spec(Album, "explicit"), {"explicit": 1})
    assert album.explicit is True


def test_decode_null_reads_declared_default():
    album = Album(year=5, tags=["x"])
    decode_row(album, registry.fields(Album), {"year": None, "tags": None})
    assert album.year == 0
    assert album.tags == []


def test_decode_missing_column_reads_zero_value():
    note = Note(body="x")
    decode_field(note, _spec(Note, "body"), {})
    assert note.body == ""


def test_decode_empty_enum_leaves_field_unset():
    album = Album(genre=Genre.JAZZ)
    decode_field(album, _spec(Album, "genre"), {"genre": ""})
    assert album.genre is Genre.JAZZ
    decode_field(album, _spec(Album, "genre"), {"genre": None})
    assert album.genre is Genre.JAZZ


def test_decode_unknown_enum_name():
    with pytest.raises(FieldValueError):
        decode_field(Album(), _spec(Album, "genre"), {"genre": "POLKA"})


def test_decode_belongs_to_is_not_reconstituted():
    track = Track(album=None)
    decode_field(track, _spec(Track, "album"), {"album": 3})
    assert track.album is None


def test_decode_has_many_ignores_row():
    album = Album(tracks=[])
    decode_field(album, _spec(Album, "tracks"), {"tracks": "[1]"})
    assert album.tracks == []


def test_decode_malformed_generic_names_field():
    with pytest.raises(UnsupportedFieldTypeError) as info:
        decode_field(Album(), _spec(Album, "tags"), {"tags": "{not json"})
    assert info.value.field == "tags"


def test_decode_generic_of_wrong_shape():
    with pytest.raises(UnsupportedFieldTypeError):
        decode_field(Album(), _spec(Album, "credits"), {"credits": "[1, 2]"})


# ------------------------------------------------------------------
# attribute access
# ------------------------------------------------------------------


class _ReadOnly:
    @property
    def title(self):
        return "fixed"


def test_get_value_missing_attribute():
    with pytest.raises(FieldAccessError):
        get_value(object(), _spec(Album, "title"))


def test_set_value_read_only_attribute():
    with pytest.raises(FieldAccessError):
        set_value(_ReadOnly(), _spec(Album, "title"), "x")


# ------------------------------------------------------------------
# loose input
# ------------------------------------------------------------------


def test_coerce_primitives():
    assert coerce(_spec(Album, "year"), "1971") == 1971
    assert coerce(_spec(Album, "title"), 11) == "11"
    assert coerce(_spec(Album, "rating"), 4) == 4.0


def test_coerce_bool_rejects_non_bool():
    with pytest.raises(FieldValueError):
        coerce(_spec(Album, "explicit"), "yes")


def test_coerce_none_to_default():
    assert coerce(_spec(Album, "year"), None) == 0
    assert coerce(_spec(Album, "genre"), None) is None


def test_coerce_enum_and_generic():
    assert coerce(_spec(Album, "genre"), "ROCK") is Genre.ROCK
    assert coerce(_spec(Album, "credits"), {"producer": "p"}) == Credits(producer="p")


def test_artist_fields_have_no_columns_but_name():
    row = encode_row(Artist(name="Joni"), registry.fields(Artist))
    assert row == {"name": "Joni"}


# ------------------------------------------------------------------
# primitive type checks
# ------------------------------------------------------------------


@pytest.mark.parametrize(
    "name, value",
    [
        ("year", "nineteen"),
        ("year", 19.5),
        ("year", True),
        ("title", 7),
        ("rating", "4.5"),
        ("explicit", 1),
    ],
)
def test_encode_primitive_of_wrong_type(name, value):
    album = Album()
    setattr(album, name, value)
    with pytest.raises(FieldValueError, match=name):
        encode_field(album, _spec(Album, name))


def test_encode_int_for_float_field():
    assert encode_field(Album(rating=4), _spec(Album, "rating")) == 4


def test_encode_null_primitive():
    album = Album()
    album.year = None
    assert encode_field(album, _spec(Album, "year")) is None
