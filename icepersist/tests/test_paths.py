from icepersist.model import Key, Value
from icepersist import paths


def test_path_for_plain_key():
    path = "hdfs://namenode/datasets/airlines.csv"
    assert paths.path_for_key(Key.plain(path)) == path


def test_path_for_chunk_key():
    path = "s3://bucket/datasets/airlines.csv"
    assert paths.path_for_key(Key.chunk(path, 7)) == path


def test_path_for_non_ascii_key():
    path = "hdfs://namenode/données/ß.csv"
    assert paths.path_for_key(Key.plain(path)) == path
    assert paths.path_for_key(Key.chunk(path, 1)) == path


def test_ice_name_is_deterministic():
    a = Value(Key.plain("frame/1"), 3)
    b = Value(Key.plain("frame/1"), 5)

    assert paths.ice_name(a) == paths.ice_name(b)


def test_ice_name_has_no_separators():
    name = paths.ice_name(Value(Key.plain("a/b/../c"), 1))

    assert "/" not in name


def test_ice_name_is_collision_free():
    keys = [
        Key.plain("a/b"),
        Key.plain("a%2Fb"),
        Key.plain("a_b"),
        Key.plain("a b"),
        Key.plain("a+b"),
        Key.chunk("a/b", 0),
        Key.chunk("a/b", 1),
        Key(b"\x00\xff"),
    ]

    names = {paths.ice_name(Value(key, 1)) for key in keys}

    assert len(names) == len(keys)


def test_ice_root():
    root = paths.ice_root("hdfs://namenode/h2o/", "10.0.0.1", 54321)
    assert root == "hdfs://namenode/h2o/ice10.0.0.1-54321"


def test_join():
    assert paths.join("memory://ice/", "obj") == "memory://ice/obj"
    assert paths.join("memory://ice", "obj") == "memory://ice/obj"


def test_bare_bucket():
    assert paths.is_bare_bucket("s3n://bucket")
    assert paths.is_bare_bucket("S3://Bucket")
    assert not paths.is_bare_bucket("s3://bucket/")
    assert not paths.is_bare_bucket("s3://bucket/key")
    assert not paths.is_bare_bucket("file:///tmp")
    assert not paths.is_bare_bucket("/tmp/data")


def test_normalize_root():
    assert paths.normalize_root("s3://bucket") == "s3://bucket/"
    assert paths.normalize_root("s3://bucket/") == "s3://bucket/"
    assert paths.normalize_root("s3://bucket/dir") == "s3://bucket/dir"
