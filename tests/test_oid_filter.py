import pytest

from null_cleaner.utils.oid_filter import OidRemoval, filter_oid_entries


def test_scenario_c_hm_null_removed():
    res = filter_oid_entries([{'type': 'hm', 'id': None}, {'type': 'x', 'id': 5}])
    assert res.kept == [{'type': 'x', 'id': 5}]
    assert res.removals == [OidRemoval.REMOVED_HM]
    assert res.hm_removed == 1 and res.he_removed == 0


def test_type_match_is_case_insensitive_and_id_text_null_counts():
    entries = [{'type': 'HE', 'id': 'NULL'}, {'type': 'Hm', 'id': ' null '}]
    res = filter_oid_entries(entries)
    assert res.kept == []
    assert res.outcomes == [OidRemoval.REMOVED_HE, OidRemoval.REMOVED_HM]


def test_unknown_types_and_real_ids_are_kept_verbatim():
    entries = [
        {'type': 'other', 'id': None},
        {'type': 'he', 'id': 'abc', 'extra': {'nested': True}},
        {'id': None},
        {'type': None, 'id': None},
    ]
    res = filter_oid_entries(entries)
    assert res.kept == entries
    assert res.kept[1] is entries[1]
    assert not res.changed


def test_missing_id_is_not_null_like():
    res = filter_oid_entries([{'type': 'hm'}, {'type': 'he'}])
    assert len(res.kept) == 2
    assert res.removals == []


def test_malformed_entries_are_kept_and_counted(caplog):
    entries = ['junk', {'type': 'he', 'id': None}, 7]
    res = filter_oid_entries(entries, identity='rec-7')
    assert res.kept == ['junk', 7]
    assert res.malformed == 2
    assert res.he_removed == 1
    assert 'rec-7' in caplog.text


@pytest.mark.parametrize('entries', [
    [],
    [{'type': 'he', 'id': None}] * 3,
    [{'type': 'x', 'id': i} for i in range(5)],
    [{'type': 'hm', 'id': None}, {'type': 'x', 'id': 1}, {'type': 'he', 'id': 'null'}, {'type': 'y', 'id': 2}, 'bad'],
])
def test_kept_is_ordered_subsequence(entries):
    res = filter_oid_entries(entries)
    assert len(res.kept) + len(res.removals) == len(entries)
    it = iter(entries)
    assert all(any(k is e for e in it) for k in res.kept)
