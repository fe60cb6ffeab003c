from codeindex.core.bm25 import fnv1a, text_to_sparse, tokenize


def test_fnv1a_reference_values():
    assert fnv1a("") == 0x811C9DC5
    assert fnv1a("a") == 0xE40C292C
    assert fnv1a("foobar") == 0xBF9CF968


def test_tokenize_splits_identifiers():
    assert tokenize("parseHTTPResponse") == ["parse", "http", "response"]
    assert tokenize("user_name") == ["user", "name"]
    assert tokenize("OrderService") == ["order", "service"]


def test_tokenize_drops_stop_words_and_single_chars():
    assert tokenize("the order is in a queue") == ["order", "queue"]
    assert tokenize("x = y + 1") == []
    assert tokenize("") == []


def test_tokenize_keeps_digit_runs():
    assert tokenize("order42") == ["order", "42"]


def test_sparse_vector_counts_term_frequency():
    vec = text_to_sparse("order order service")
    assert len(vec.indices) == 2
    weights = dict(zip(vec.indices, vec.values))
    assert weights[fnv1a("order")] == 2.0
    assert weights[fnv1a("service")] == 1.0


def test_sparse_vector_indices_sorted():
    vec = text_to_sparse("findUserById saveOrder deletePayment refundInvoice")
    assert vec.indices == sorted(vec.indices)
    assert len(vec.indices) == len(vec.values)


def test_sparse_vector_empty_text():
    vec = text_to_sparse("")
    assert vec.indices == [] and vec.values == []


def test_tokenize_camel_and_snake_case():
    assert "process" in tokenize("processPayment") and "payment" in tokenize("processPayment")
    tokens = tokenize("get_user_by_id")
    assert {"get", "user", "id"} <= set(tokens)
    assert "by" not in tokens


def test_sparse_vector_is_deterministic():
    text = "public Order findOrderById(Long orderId)"
    assert text_to_sparse(text) == text_to_sparse(text)
