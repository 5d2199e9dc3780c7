from models.market_reference import MarketReference
from services.conversation.market_cache import MarketReferenceCache


def _reference(n):
    return MarketReference(
        source="store", record_id=n, market_id=f"0x{n:x}", contract_address=None,
        question=f"Question number {n}?", option_a="Yes", option_b="No",
    )


def test_tokens_are_sequential():
    cache = MarketReferenceCache()
    assert cache.put(_reference(1)) == "m1"
    assert cache.put(_reference(2)) == "m2"
    assert cache.get("m2").record_id == 2
    assert cache.get("m3") is None


def test_insert_at_ceiling_clears_everything():
    cache = MarketReferenceCache(ceiling=500)
    for n in range(500):
        cache.put(_reference(n))
    assert len(cache) == 500

    token = cache.put(_reference(500))

    assert len(cache) == 1
    assert token == "m1"
    assert cache.get("m1").record_id == 500
    assert cache.get("m2") is None


def test_enforce_ceiling_below_limit_is_noop():
    cache = MarketReferenceCache(ceiling=2)
    cache.put(_reference(1))
    assert cache.enforce_ceiling() is False
    assert len(cache) == 1
