def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def register(client, email="alice@example.com", password="secret123"):
    return client.post("/api/auth/register", json={"email": email, "password": password})


def test_healthz(client):
    assert client.get("/healthz").json() == {"ok": True}


def test_register_then_verify_scenario(client):
    res = register(client)
    assert res.status_code == 201
    body = res.json()
    assert body["message"] == "User registered successfully"
    token = body["token"]

    me = client.get("/api/auth/me", headers=bearer(token))
    assert me.status_code == 200
    identity = me.json()
    assert identity["email"] == "alice@example.com"
    assert identity.get("username") is None
    assert set(identity) <= {"id", "username", "email"}

    again = register(client)
    assert again.status_code == 400
    assert again.json() == {"error": "Email already exists"}


def test_register_never_echoes_password(client):
    res = register(client, "bob@example.com", "p4ssw0rd-unique")
    assert "p4ssw0rd-unique" not in res.text


def test_register_missing_fields(client):
    res = client.post("/api/auth/register", json={"email": "x@example.com"})
    assert res.status_code == 400
    assert "error" in res.json()


def test_register_non_string_fields(client):
    res = client.post("/api/auth/register", json={"email": ["x"], "password": 1})
    assert res.status_code == 400


def test_me_with_empty_bearer_token(client):
    res = client.get("/api/auth/me", headers={"Authorization": "Bearer "})
    assert res.status_code == 401
    assert "message" in res.json()


def test_me_without_header(client):
    res = client.get("/api/auth/me")
    assert res.status_code == 401
    assert res.json() == {"message": "Authentication token is missing or malformed"}


def test_me_wrong_scheme(client):
    token = register(client).json()["token"]
    res = client.get("/api/auth/me", headers={"Authorization": f"Basic {token}"})
    assert res.status_code == 401


def test_me_invalid_token(client):
    res = client.get("/api/auth/me", headers=bearer("not.a.token"))
    assert res.status_code == 401
    assert res.json() == {"message": "Invalid or expired token"}


def test_me_user_deleted(client):
    token = register(client).json()["token"]
    conn = client.app.state.db.connect()
    with conn:
        conn.execute("DELETE FROM users")

    res = client.get("/api/auth/me", headers=bearer(token))
    assert res.status_code == 404
    assert res.json() == {"message": "User not found"}


def test_login(client):
    register(client, "carol@example.com", "secret123")

    res = client.post("/api/auth/login", json={"email": "carol@example.com", "password": "secret123"})
    assert res.status_code == 200
    body = res.json()
    assert body["email"] == "carol@example.com"
    assert "password_hash" not in body

    me = client.get("/api/auth/me", headers=bearer(body["token"]))
    assert me.json()["id"] == body["id"]


def test_login_bad_password(client):
    register(client, "carol@example.com", "secret123")
    res = client.post("/api/auth/login", json={"email": "carol@example.com", "password": "nope"})
    assert res.status_code == 401
    assert res.json() == {"error": "Invalid credentials"}


def _seed_stocks(client):
    for symbol, name in [("AAPL", "Apple Inc."), ("AMZN", "Amazon.com Inc."),
                         ("MSFT", "Microsoft Corp."), ("GOOGL", "Alphabet Inc."),
                         ("APA", "APA Corp"), ("TSLA", "Tesla Inc.")]:
        res = client.post("/api/stocks", json={"symbol": symbol, "name": name, "type": "Stock"})
        assert res.status_code == 201


def test_stocks_list_and_duplicate(client):
    _seed_stocks(client)
    data = client.get("/api/stocks/allStocks").json()["data"]
    assert [s["symbol"] for s in data] == ["AAPL", "AMZN", "APA", "GOOGL", "MSFT", "TSLA"]

    dup = client.post("/api/stocks", json={"symbol": "AAPL", "name": "Apple Inc."})
    assert dup.status_code == 400
    assert dup.json() == {"error": "Stock already exists"}


def test_stock_search_paginates(client):
    _seed_stocks(client)

    data = client.get("/api/stocks/search", params={"q": "inc"}).json()["data"]
    assert data["totalResults"] == 4
    assert data["totalPages"] == 2
    assert data["page"] == 1
    assert len(data["results"]) == 3
    assert data["pageNumbers"] == [1, 2]

    second = client.get("/api/stocks/search", params={"q": "inc", "page": 2}).json()["data"]
    assert len(second["results"]) == 1


def test_stock_search_ranks_exact_symbol_first(client):
    _seed_stocks(client)
    data = client.get("/api/stocks/search", params={"q": "apa"}).json()["data"]
    assert [r["symbol"] for r in data["results"]] == ["APA"]

    data = client.get("/api/stocks/search", params={"q": "a"}).json()["data"]
    assert data["results"][0]["symbol"] == "AAPL"


def _holding(**overrides):
    body = {
        "symbol": "aapl",
        "shares": 10,
        "costPerShare": 150.0,
        "costInEUR": 1400.0,
        "tradingCurrency": "USD",
        "purchaseDate": "2024-03-01",
    }
    body.update(overrides)
    return body


def test_portfolio_requires_bearer(client):
    assert client.get("/api/portfolio").status_code == 401
    assert client.post("/api/portfolio", json=_holding()).status_code == 401


def test_portfolio_add_and_aggregate(client):
    token = register(client).json()["token"]

    res = client.post("/api/portfolio", json=_holding(), headers=bearer(token))
    assert res.status_code == 201
    assert res.json()["data"]["symbol"] == "AAPL"
    client.post("/api/portfolio", json=_holding(shares=10, costPerShare=250.0), headers=bearer(token))
    client.post("/api/portfolio", json=_holding(symbol="MSFT", shares=2, costPerShare=300.0),
                headers=bearer(token))

    data = client.get("/api/portfolio", headers=bearer(token)).json()["data"]
    aapl = next(h for h in data if h["symbol"] == "AAPL")
    assert aapl["totalShares"] == 20
    assert aapl["totalCost"] == 4000
    assert aapl["avgCostPerShare"] == 200

    summary = client.get("/api/portfolio/aapl", headers=bearer(token)).json()["data"]
    assert summary["symbol"] == "AAPL"
    assert len(summary["holdings"]) == 2
    assert summary["totalInvestment"] == 4000


def test_portfolio_is_per_user(client):
    alice = register(client).json()["token"]
    bob = register(client, "bob@example.com").json()["token"]
    client.post("/api/portfolio", json=_holding(), headers=bearer(alice))

    assert client.get("/api/portfolio", headers=bearer(bob)).json()["data"] == []


def test_portfolio_rejects_invalid_holding(client):
    token = register(client).json()["token"]
    for bad in (_holding(shares=-1), _holding(tradingCurrency="JPY"), _holding(purchaseDate="soon")):
        res = client.post("/api/portfolio", json=bad, headers=bearer(token))
        assert res.status_code == 400


def test_portfolio_remove_holding(client):
    token = register(client).json()["token"]
    holding_id = client.post("/api/portfolio", json=_holding(), headers=bearer(token)).json()["data"]["id"]

    res = client.delete(f"/api/portfolio/AAPL/{holding_id}", headers=bearer(token))
    assert res.json() == {"success": True}

    missing = client.delete(f"/api/portfolio/AAPL/{holding_id}", headers=bearer(token))
    assert missing.status_code == 404


def test_stock_routes_report_failures_in_envelope(client, monkeypatch):
    import sqlite3

    def broken(self):
        raise sqlite3.OperationalError("no such table: stocks")

    monkeypatch.setattr(type(client.app.state.stocks), "list_all", broken)
    for path in ("/api/stocks/allStocks", "/api/stocks/search?q=a"):
        res = client.get(path)
        assert res.status_code == 500
        assert res.json() == {"success": False, "message": "Failed to fetch stocks."}


def test_portfolio_display_fields(client):
    token = register(client).json()["token"]
    client.post("/api/portfolio", json=_holding(costPerShare=1234.5), headers=bearer(token))
    client.post("/api/portfolio", json=_holding(symbol="CDR", tradingCurrency="PLN", costPerShare=1234.5),
                headers=bearer(token))

    data = client.get("/api/portfolio", headers=bearer(token)).json()["data"]
    assert [h["displayWeight"] for h in data] == ["50.00%", "50.00%"]

    summary = client.get("/api/portfolio/CDR", headers=bearer(token)).json()["data"]
    assert summary["holdings"][0]["displayCostPerShare"] == "PLN 1,234.50"
