# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un concepto del negocio.
# Los atributos Python usan snake_case; el formato de intercambio con la
# hoja remota usa camelCase (to_dict / from_dict).
# from_dict coerciona siempre los números: la hoja puede devolver texto.
# ==============================================================================

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from enum import Enum

from app_facturas.config import (
    DEFAULT_EXCHANGE_RATE,
    DEFAULT_PRICE_PER_KG,
    DEFAULT_FORMULA_VERSION,
)
from app_facturas.numbers import round2, safe_number, safe_int


class ValidationError(ValueError):
    """Excepción lanzada cuando una entidad no puede guardarse."""
    pass


# ==============================================================================
# ENUMERACIONES - Estados y tipos válidos
# ==============================================================================

class InvoiceStatus(str, Enum):
    """Estados posibles de una factura."""
    DRAFT = 'Borrador'
    PENDING = 'Pendiente'
    PARTIAL = 'Abonado'      # Pago parcial (típicamente 70%)
    PAID = 'Pagado'          # 100%
    DELIVERED = 'Entregado'

    @classmethod
    def parse(cls, value: Any) -> 'InvoiceStatus':
        """Acepta el valor ('Pagado') o el nombre ('PAID'); por defecto Borrador."""
        if isinstance(value, cls):
            return value
        text = str(value or '').strip()
        for status in cls:
            if text == status.value or text.upper() == status.name:
                return status
        return cls.DRAFT


# Estados que cuentan para ingresos y ganancia realizada
FINANCIALLY_ACTIVE_STATUSES = frozenset([
    InvoiceStatus.PARTIAL,
    InvoiceStatus.PAID,
    InvoiceStatus.DELIVERED,
])


class Platform(str, Enum):
    """Plataformas de compra de los productos."""
    SHEIN = 'Shein'
    AMAZON = 'Amazon'
    TEMU = 'Temu'
    ALIEXPRESS = 'AliExpress'
    ALIBABA = 'Alibaba'
    OTHER = 'Otro'

    @classmethod
    def parse(cls, value: Any) -> 'Platform':
        if isinstance(value, cls):
            return value
        text = str(value or '').strip().lower()
        for platform in cls:
            if text in (platform.value.lower(), platform.name.lower()):
                return platform
        return cls.OTHER


class ExpenseCategory(str, Enum):
    """Categorías de gastos operativos."""
    MATERIAL = 'Material'
    SERVICE = 'Servicio'
    TRANSPORT = 'Transporte'
    OTHER = 'Otro'

    @classmethod
    def parse(cls, value: Any) -> 'ExpenseCategory':
        if isinstance(value, cls):
            return value
        text = str(value or '').strip().lower()
        for category in cls:
            if text in (category.value.lower(), category.name.lower()):
                return category
        return cls.OTHER


class FormulaVersion(int, Enum):
    """
    Versión del conjunto de fórmulas financieras.

    V1: precio final editable, recargo electrónico sobre el precio original,
        ganancia = (final - original) + comisión.
    V2: precio final derivado de impuestos/descuentos, recargo electrónico
        sobre (original - impuestos - descuentos), ganancia con término de
        impuestos.
    """
    V1 = 1
    V2 = 2

    @classmethod
    def parse(cls, value: Any) -> 'FormulaVersion':
        try:
            return cls(safe_int(value))
        except ValueError:
            return cls(DEFAULT_FORMULA_VERSION)


# Unidades de peso válidas
WEIGHT_UNITS = frozenset(['lb', 'kg'])


# ==============================================================================
# HELPERS DE CONVERSIÓN
# ==============================================================================

def _text(value: Any) -> str:
    """Texto seguro: None -> '', 4140000000.0 -> '4140000000'."""
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _optional_text(value: Any) -> Optional[str]:
    text = _text(value).strip()
    return text or None


def _optional_number(value: Any) -> Optional[float]:
    if value is None or value == '':
        return None
    return safe_number(value)


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'si', 'sí', 'yes')
    return bool(value)


# ==============================================================================
# ENTIDAD DE CLIENTE
# ==============================================================================

@dataclass
class Client:
    """
    Cliente del negocio.

    Attributes:
        id: Identificador único
        name: Nombre del cliente
        phone: Teléfono de contacto
        email: Correo (opcional)
        address: Dirección (opcional)
        notes: Notas internas (opcional)
    """
    id: str = ''
    name: str = ''
    phone: str = ''
    email: str = ''
    address: str = ''
    notes: str = ''

    def validate(self) -> None:
        """Lanza ValidationError si falta el nombre."""
        if not self.name or not self.name.strip():
            raise ValidationError('El cliente debe tener un nombre')

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'id': self.id,
            'name': self.name,
            'phone': self.phone,
            'email': self.email,
            'address': self.address,
            'notes': self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Client':
        """Crea instancia desde diccionario."""
        return cls(
            id=_text(data.get('id')),
            name=_text(data.get('name')),
            phone=_text(data.get('phone')),
            email=_text(data.get('email')),
            address=_text(data.get('address')),
            notes=_text(data.get('notes')),
        )


# ==============================================================================
# ENTIDADES DE FACTURA
# ==============================================================================

@dataclass
class ProductItem:
    """
    Producto (línea) dentro de una factura. Pertenece a una sola factura.

    Attributes:
        id: Identificador de la línea
        name: Descripción del producto
        quantity: Cantidad (entero >= 1)
        weight: Peso unitario
        weight_unit: 'lb' o 'kg'
        platform: Plataforma de compra
        tracking_number: Número de rastreo (opcional)
        original_price: Costo de compra
        taxes: Impuestos (opcional, esquema nuevo)
        discounts: Descuentos (opcional, esquema nuevo)
        final_price: Precio de venta
        commission: Comisión interna
        is_electronics: Aplica recargo del 20% en logística
    """
    id: str = ''
    name: str = ''
    quantity: int = 1
    weight: float = 0.0
    weight_unit: str = 'lb'
    platform: Platform = Platform.SHEIN
    tracking_number: Optional[str] = None
    original_price: float = 0.0
    taxes: Optional[float] = None
    discounts: Optional[float] = None
    final_price: float = 0.0
    commission: float = 0.0
    is_electronics: bool = False

    @property
    def has_adjustments(self) -> bool:
        """True si la línea usa el esquema con impuestos/descuentos."""
        return self.taxes is not None or self.discounts is not None

    def validate(self) -> None:
        if self.quantity < 1:
            raise ValidationError(f"Cantidad inválida en '{self.name or self.id}'")
        if self.weight < 0:
            raise ValidationError(f"Peso negativo en '{self.name or self.id}'")
        if self.weight_unit not in WEIGHT_UNITS:
            raise ValidationError(f"Unidad de peso inválida: {self.weight_unit}")

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        d = {
            'id': self.id,
            'name': self.name,
            'quantity': self.quantity,
            'weight': self.weight,
            'weightUnit': self.weight_unit,
            'platform': self.platform.value if isinstance(self.platform, Enum) else self.platform,
            'originalPrice': self.original_price,
            'finalPrice': self.final_price,
            'commission': self.commission,
            'isElectronics': self.is_electronics,
        }
        if self.tracking_number:
            d['trackingNumber'] = self.tracking_number
        if self.taxes is not None:
            d['taxes'] = self.taxes
        if self.discounts is not None:
            d['discounts'] = self.discounts
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProductItem':
        """Crea instancia desde diccionario (acepta el campo legacy weightLb)."""
        weight = data.get('weight')
        if weight is None:
            weight = data.get('weightLb')
        unit = _text(data.get('weightUnit')).strip().lower()
        return cls(
            id=_text(data.get('id')),
            name=_text(data.get('name')),
            quantity=safe_int(data.get('quantity')),
            weight=safe_number(weight),
            weight_unit=unit if unit in WEIGHT_UNITS else 'lb',
            platform=Platform.parse(data.get('platform')),
            tracking_number=_optional_text(data.get('trackingNumber')),
            original_price=safe_number(data.get('originalPrice')),
            taxes=_optional_number(data.get('taxes')),
            discounts=_optional_number(data.get('discounts')),
            final_price=safe_number(data.get('finalPrice')),
            commission=safe_number(data.get('commission')),
            is_electronics=_to_bool(data.get('isElectronics', False)),
        )


@dataclass
class Invoice:
    """
    Factura con múltiples productos.

    Los totales (total_product_cost, total_product_sale, total_commissions,
    grand_total_usd) son derivados: el almacén los recalcula en cada lectura
    y en cada escritura, nunca se confía en el valor persistido.

    Attributes:
        id: Identificador único
        client_id: Referencia débil al cliente
        created_at: Fecha de creación (ISO)
        updated_at: Última modificación (ISO)
        status: Estado de la factura
        exchange_rate: Bs por USD, congelada en la factura
        price_per_kg: Precio por kg congelado al guardar (None = usar global)
        items: Productos en orden de inserción
        logistics_cost: Costo de logística (derivado y persistido)
        amount_paid: Monto abonado
    """
    id: str = ''
    client_id: str = ''
    created_at: str = ''
    updated_at: str = ''
    status: InvoiceStatus = InvoiceStatus.DRAFT
    exchange_rate: float = 0.0
    price_per_kg: Optional[float] = None
    items: List[ProductItem] = field(default_factory=list)
    logistics_cost: float = 0.0
    amount_paid: float = 0.0
    total_product_cost: float = 0.0
    total_product_sale: float = 0.0
    total_commissions: float = 0.0
    grand_total_usd: float = 0.0

    @property
    def remaining_balance(self) -> float:
        """Saldo pendiente (nunca negativo)."""
        return max(0.0, round2(self.grand_total_usd - self.amount_paid))

    @property
    def is_draft(self) -> bool:
        return self.status == InvoiceStatus.DRAFT

    def validate(self) -> None:
        """Lanza ValidationError si falta el cliente o un producto es inválido."""
        if not self.client_id:
            raise ValidationError('Seleccione un cliente')
        for item in self.items:
            item.validate()

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia JSON."""
        d = {
            'id': self.id,
            'clientId': self.client_id,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
            'status': self.status.value if isinstance(self.status, Enum) else self.status,
            'exchangeRate': self.exchange_rate,
            'items': [item.to_dict() for item in self.items],
            'logisticsCost': self.logistics_cost,
            'amountPaid': self.amount_paid,
            'totalProductCost': self.total_product_cost,
            'totalProductSale': self.total_product_sale,
            'totalCommissions': self.total_commissions,
            'grandTotalUsd': self.grand_total_usd,
        }
        if self.price_per_kg is not None:
            d['pricePerKg'] = self.price_per_kg
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Invoice':
        """Crea instancia desde diccionario (coerciona todos los números)."""
        items = data.get('items') or []
        if not isinstance(items, list):
            items = []
        price_per_kg = _optional_number(data.get('pricePerKg'))
        return cls(
            id=_text(data.get('id')),
            client_id=_text(data.get('clientId')),
            created_at=_text(data.get('createdAt')),
            updated_at=_text(data.get('updatedAt')),
            status=InvoiceStatus.parse(data.get('status')),
            exchange_rate=safe_number(data.get('exchangeRate')),
            price_per_kg=price_per_kg if price_per_kg else None,
            items=[ProductItem.from_dict(i) for i in items if isinstance(i, dict)],
            logistics_cost=safe_number(data.get('logisticsCost')),
            amount_paid=safe_number(data.get('amountPaid')),
            total_product_cost=safe_number(data.get('totalProductCost')),
            total_product_sale=safe_number(data.get('totalProductSale')),
            total_commissions=safe_number(data.get('totalCommissions')),
            grand_total_usd=safe_number(data.get('grandTotalUsd')),
        )


# ==============================================================================
# ENTIDAD DE GASTO
# ==============================================================================

@dataclass
class Expense:
    """
    Gasto operativo. No se relaciona con facturas ni clientes.

    Attributes:
        id: Identificador único
        description: Descripción del gasto
        amount: Monto (> 0)
        category: Categoría
        date: Fecha ISO
    """
    id: str = ''
    description: str = ''
    amount: float = 0.0
    category: ExpenseCategory = ExpenseCategory.OTHER
    date: str = ''

    def validate(self) -> None:
        if not self.description or not self.description.strip():
            raise ValidationError('Ingrese una descripción del gasto')
        if self.amount <= 0:
            raise ValidationError('El monto del gasto debe ser mayor a 0')

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'description': self.description,
            'amount': self.amount,
            'category': self.category.value if isinstance(self.category, Enum) else self.category,
            'date': self.date,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Expense':
        return cls(
            id=_text(data.get('id')),
            description=_text(data.get('description')),
            amount=safe_number(data.get('amount')),
            category=ExpenseCategory.parse(data.get('category')),
            date=_text(data.get('date')),
        )


# ==============================================================================
# CONFIGURACIÓN GLOBAL
# ==============================================================================

@dataclass
class Settings:
    """
    Configuración global del negocio (una sola instancia por almacén).

    Attributes:
        exchange_rate: Bs por USD
        price_per_kg: Tarifa de envío por kg (USD)
        formula_version: Conjunto de fórmulas financieras activo
    """
    exchange_rate: float = DEFAULT_EXCHANGE_RATE
    price_per_kg: float = DEFAULT_PRICE_PER_KG
    formula_version: FormulaVersion = FormulaVersion(DEFAULT_FORMULA_VERSION)

    def validate(self) -> None:
        if self.exchange_rate < 0:
            raise ValidationError('La tasa de cambio no puede ser negativa')
        if self.price_per_kg < 0:
            raise ValidationError('El precio por kg no puede ser negativo')

    def to_dict(self) -> Dict[str, Any]:
        return {
            'exchangeRate': self.exchange_rate,
            'pricePerKg': self.price_per_kg,
            'formulaVersion': int(self.formula_version),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Settings':
        """
        Crea instancia; valores ausentes o en cero toman el valor por defecto.
        Un valor que no es objeto (lista, texto) se trata como vacío.
        """
        if not isinstance(data, dict):
            data = {}
        return cls(
            exchange_rate=safe_number(data.get('exchangeRate')) or DEFAULT_EXCHANGE_RATE,
            price_per_kg=safe_number(data.get('pricePerKg')) or DEFAULT_PRICE_PER_KG,
            formula_version=FormulaVersion.parse(
                data.get('formulaVersion', DEFAULT_FORMULA_VERSION)
            ),
        )
