"""StreamStock - olay güdümlü stok takibi, uyarılar, tahmin ve yeniden sipariş önerileri."""

__version__ = "0.1.0"
