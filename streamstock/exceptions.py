"""StreamStock hata sınıfları."""


class StreamStockError(Exception):
    """Tüm StreamStock hatalarının temel sınıfı."""
    pass


class ProductNotFoundError(StreamStockError):
    """Olay veya sorgu bilinmeyen bir ürünü hedefliyor."""

    def __init__(self, product_id: str):
        super().__init__(f"Ürün bulunamadı: {product_id}")
        self.product_id = product_id


class AlertNotFoundError(StreamStockError):
    """Uyarı kimliği kayıtlı değil."""

    def __init__(self, alert_id: str):
        super().__init__(f"Uyarı bulunamadı: {alert_id}")
        self.alert_id = alert_id


class AlertAlreadyResolvedError(StreamStockError):
    """Çözülmüş bir uyarı tekrar çözülemez."""

    def __init__(self, alert_id: str):
        super().__init__(f"Uyarı zaten çözülmüş: {alert_id}")
        self.alert_id = alert_id


class MalformedEventError(StreamStockError):
    """Alım sınırında reddedilen, eksik veya hatalı alanlı olay."""
    pass
