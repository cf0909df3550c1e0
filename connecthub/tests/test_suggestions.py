from types import SimpleNamespace

from connecthub.suggestions import (
    MAX_SUGGESTIONS,
    normalize_interests,
    rank_candidates,
    similarity_score,
)


def user(name, interests):
    return SimpleNamespace(username=name, interests=interests)


def test_normalize_interests_strips_and_dedupes():
    assert normalize_interests([' Tech', 'Music', 'Tech', '', '  ']) == ['Tech', 'Music']
    assert normalize_interests(None) == []


def test_similarity_score_is_share_of_my_interests():
    assert similarity_score(['Tech', 'Music'], 1) == 50
    assert similarity_score(['Tech', 'Music'], 2) == 100
    assert similarity_score([], 3) == 0


def test_similarity_score_rounds_half_up():
    assert similarity_score(['a', 'b', 'c'], 1) == 33
    assert similarity_score(['a', 'b', 'c'], 2) == 67
    # 12.5 and 62.5 round up, not to even
    assert similarity_score(list('abcdefgh'), 1) == 13
    assert similarity_score(list('abcdefgh'), 5) == 63


def test_rank_candidates_orders_by_score():
    b = user('b', ['Tech', 'Art'])
    c = user('c', ['Music', 'Tech', 'Cooking'])
    d = user('d', ['Gardening'])
    ranked = rank_candidates(['Tech', 'Music'], [b, c, d])

    assert [(u.username, common, score) for u, common, score in ranked] == [
        ('c', ['Music', 'Tech'], 100),
        ('b', ['Tech'], 50),
    ]


def test_rank_candidates_without_my_interests():
    assert rank_candidates([], [user('b', ['Tech'])]) == []


def test_rank_candidates_is_capped():
    candidates = [user(f"u{i}", ['Tech']) for i in range(MAX_SUGGESTIONS + 5)]
    candidates.append(user('best', ['Tech', 'Music']))
    ranked = rank_candidates(['Tech', 'Music'], candidates)

    assert len(ranked) == MAX_SUGGESTIONS
    # scoring happens before the cap, so the best match always survives
    assert ranked[0][0].username == 'best'
    assert rank_candidates(['Tech'], candidates, limit=3)[2][2] == 100
