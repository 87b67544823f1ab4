from miniaturas.config import Settings


def test_host_e_porta_padrao():
    settings = Settings()
    assert (settings.host, settings.port) == ("0.0.0.0", 5000)


def test_host_e_porta_do_ambiente(monkeypatch):
    monkeypatch.setenv("MINIATURAS_HOST", "127.0.0.1")
    monkeypatch.setenv("MINIATURAS_PORT", "8080")
    settings = Settings()
    assert settings.host == "127.0.0.1"
    assert settings.port == 8080


def test_origens_cors_separadas_por_virgula():
    assert Settings(cors_origins="http://a.com, http://b.com,").origens_cors == ["http://a.com", "http://b.com"]
