from security.tokens import hash_token, issue_token, token_matches


def test_issue_returns_raw_and_hash():
    raw, hashed = issue_token()
    assert raw != hashed
    assert hash_token(raw) == hashed


def test_tokens_are_unique():
    assert issue_token()[0] != issue_token()[0]


def test_matching():
    raw, hashed = issue_token()
    assert token_matches(raw, hashed)
    assert not token_matches(raw + "x", hashed)
    assert not token_matches(None, hashed)
    assert not token_matches(raw, None)
