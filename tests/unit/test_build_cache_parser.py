from nerdctld.PARSERS.build_cache_parser import parse_build_cache

REPORT = """ID:\t\t3o6oyzst1nj2kwgjdrnfrr4c3
Created at:\t2024-03-01 12:00:00.51 +0000 UTC
Mutable:\tfalse
Reclaimable:\ttrue
Shared:\t\tfalse
Size:\t\t4.10KB
Description:\tlocal source for context
Usage count:\t1
Last used:\t3 hours ago
Type:\t\tsource.local

ID:\t\tx9k2m1
Parent:\t\t3o6oyzst1nj2kwgjdrnfrr4c3
Parent:\t\tq8w7e6
Created at:\t2024-03-01 12:05:00 +0000 UTC
Mutable:\tfalse
Reclaimable:\tfalse
Shared:\t\ttrue
Size:\t\t12.3MB
Description:\tmount / from exec /bin/sh -c apk add curl
Usage count:\t2
Type:\t\tregular
ID:\t\tfr0nt3nd
Size:\t\t0B
Type:\t\tfrontend

Shared:\t\t12.3MB
Private:\t4.10KB
Reclaimable:\t4.10KB
Total:\t\t12.30MB
"""

def test_parse_records_and_summary():
    records, summary = parse_build_cache(REPORT)
    assert [r.id for r in records] == ["3o6oyzst1nj2kwgjdrnfrr4c3", "x9k2m1", "fr0nt3nd"]

    first = records[0]
    assert first.created_at == "2024-03-01 12:00:00.51 +0000 UTC"
    assert first.reclaimable is True
    assert first.mutable is False
    assert first.size == int(4.10 * 1024)
    assert first.description == "local source for context"
    assert first.usage_count == 1
    assert first.last_used == "3 hours ago"
    assert first.type == "source.local"
    assert first.parents == []

    second = records[1]
    assert second.parents == ["3o6oyzst1nj2kwgjdrnfrr4c3", "q8w7e6"]
    assert second.shared is True
    assert second.last_used is None
    assert second.description == "mount / from exec /bin/sh -c apk add curl"

    assert records[2].type == "frontend"

    assert summary is not None
    assert summary.total == int(12.30 * 1024 ** 2)
    assert summary.private == int(4.10 * 1024)

def test_parse_without_summary():
    records, summary = parse_build_cache("ID:\tabc\nSize:\t1KB\nType:\tregular\n")
    assert len(records) == 1
    assert records[0].size == 1024
    assert summary is None

def test_parse_empty_report():
    assert parse_build_cache("") == ([], None)
