"""Product lookup and stock adjustment workflow keyed by a scanned barcode."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Awaitable, Callable, Protocol

from ..capture.clock import Scheduler
from ..capture.feedback import Haptics, NullHaptics
from .errors import INVALID_RESPONSE, TransportError, ValidationError, WarehouseError
from .forms import (
    NewProduct,
    ProductDraft,
    StockAdjustment,
    StockForm,
    validate_product_draft,
    validate_stock_form,
)
from .models import LookupResult, Product, ProductFound, StockDirection

logger = logging.getLogger(__name__)

LOOKUP_FAILED = "Failed to check product. Check your connection."


def _lookup_message(exc: WarehouseError) -> str:
    if isinstance(exc, TransportError) and exc.message == INVALID_RESPONSE:
        return exc.message
    return LOOKUP_FAILED


class ModalState(Enum):
    IDLE = "idle"
    LOOKUP_PENDING = "lookup_pending"
    NOT_FOUND_FORM = "not_found_form"
    FOUND_FORM = "found_form"
    SUBMITTING = "submitting"


_TRANSITIONS: dict[ModalState, frozenset[ModalState]] = {
    ModalState.IDLE: frozenset({ModalState.LOOKUP_PENDING}),
    ModalState.LOOKUP_PENDING: frozenset(
        {
            ModalState.LOOKUP_PENDING,
            ModalState.NOT_FOUND_FORM,
            ModalState.FOUND_FORM,
            ModalState.IDLE,
        }
    ),
    ModalState.NOT_FOUND_FORM: frozenset(
        {ModalState.SUBMITTING, ModalState.LOOKUP_PENDING, ModalState.IDLE}
    ),
    ModalState.FOUND_FORM: frozenset(
        {ModalState.SUBMITTING, ModalState.LOOKUP_PENDING, ModalState.IDLE}
    ),
    ModalState.SUBMITTING: frozenset(
        {ModalState.IDLE, ModalState.NOT_FOUND_FORM, ModalState.FOUND_FORM}
    ),
}


class IllegalTransition(RuntimeError):
    pass


class ProductGateway(Protocol):
    async def lookup_product(self, barcode: str) -> LookupResult:
        ...

    async def create_from(self, command: NewProduct) -> Product:
        ...

    async def apply_adjustment(self, command: StockAdjustment) -> Product:
        ...


StateListener = Callable[[ModalState], None]


class StockModal:
    """Short-lived create/adjust workflow for one scanned barcode.

    Validation errors stay in the active form and never reach the gateway.
    Gateway errors send the modal back to the form it came from with the
    message set and the input kept, so the user can retry without scanning
    again. A newer ``open`` or a ``close`` invalidates any in-flight request.
    """

    def __init__(
        self,
        gateway: ProductGateway,
        scheduler: Scheduler | None = None,
        *,
        haptics: Haptics | None = None,
    ) -> None:
        self._gateway = gateway
        self._scheduler = scheduler
        self._haptics = haptics or NullHaptics()
        self.state = ModalState.IDLE
        self.barcode = ""
        self.product: Product | None = None
        self.error = ""
        self.draft = ProductDraft()
        self.stock_form = StockForm()
        self.last_result: Product | None = None
        self._generation = 0
        self._listeners: list[StateListener] = []
        self._close_listeners: list[Callable[[], None]] = []

    @property
    def visible(self) -> bool:
        return self.state != ModalState.IDLE

    @property
    def loading(self) -> bool:
        return self.state in (ModalState.LOOKUP_PENDING, ModalState.SUBMITTING)

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def add_close_listener(self, listener: Callable[[], None]) -> None:
        self._close_listeners.append(listener)

    def _transition(self, target: ModalState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise IllegalTransition(f"{self.state.name} -> {target.name}")
        logger.debug("modal %s -> %s (%s)", self.state.value, target.value, self.barcode)
        self.state = target
        for listener in list(self._listeners):
            listener(target)

    def _require(self, expected: ModalState) -> None:
        if self.state != expected:
            raise IllegalTransition(f"expected {expected.name}, modal is {self.state.name}")

    def _reset(self) -> None:
        self.barcode = ""
        self.product = None
        self.error = ""
        self.draft = ProductDraft()
        self.stock_form = StockForm()

    def begin_lookup(self, barcode: str) -> None:
        if self._scheduler is None:
            raise RuntimeError("StockModal needs a scheduler to launch lookups")
        if self.state == ModalState.SUBMITTING:
            logger.warning("ignoring lookup for %s while a submission is in flight", barcode)
            return
        self._scheduler.spawn(self.open(barcode))

    async def open(self, barcode: str) -> ModalState:
        if self.state == ModalState.SUBMITTING:
            logger.warning("ignoring lookup for %s while a submission is in flight", barcode)
            return self.state
        self._generation += 1
        generation = self._generation
        self._reset()
        self.barcode = barcode
        self._transition(ModalState.LOOKUP_PENDING)
        try:
            result = await self._gateway.lookup_product(barcode)
        except WarehouseError as exc:
            if generation != self._generation:
                return self.state
            logger.error("product lookup for %s failed: %s", barcode, exc)
            self.error = _lookup_message(exc)
            self._transition(ModalState.NOT_FOUND_FORM)
            return self.state
        if generation != self._generation:
            logger.debug("discarding stale lookup for %s", barcode)
            return self.state
        if isinstance(result, ProductFound):
            self.product = result.product
            self._transition(ModalState.FOUND_FORM)
        else:
            self._transition(ModalState.NOT_FOUND_FORM)
        return self.state

    def select_action(self, direction: StockDirection) -> None:
        self._require(ModalState.FOUND_FORM)
        self.stock_form.direction = direction
        self.error = ""

    async def submit_create(self, draft: ProductDraft | None = None) -> bool:
        self._require(ModalState.NOT_FOUND_FORM)
        if draft is not None:
            self.draft = draft
        try:
            command = validate_product_draft(self.barcode, self.draft)
        except ValidationError as exc:
            self.error = exc.message
            return False
        return await self._submit(
            ModalState.NOT_FOUND_FORM,
            lambda: self._gateway.create_from(command),
            "Failed to create product",
        )

    async def submit_adjustment(self, form: StockForm | None = None) -> bool:
        self._require(ModalState.FOUND_FORM)
        if form is not None:
            self.stock_form = form
        if self.product is None:
            raise IllegalTransition("found form without a product")
        try:
            command = validate_stock_form(self.stock_form, self.product)
        except ValidationError as exc:
            self.error = exc.message
            return False
        fallback = (
            "Failed to add stock"
            if command.direction == StockDirection.ADD
            else "Failed to remove stock"
        )
        return await self._submit(
            ModalState.FOUND_FORM,
            lambda: self._gateway.apply_adjustment(command),
            fallback,
        )

    async def _submit(
        self,
        form_state: ModalState,
        call: Callable[[], Awaitable[Product]],
        fallback: str,
    ) -> bool:
        self.error = ""
        generation = self._generation
        self._transition(ModalState.SUBMITTING)
        try:
            product = await call()
        except WarehouseError as exc:
            if generation != self._generation:
                return False
            logger.warning("submission for %s failed: %s", self.barcode, exc)
            self.error = exc.message or fallback
            self._transition(form_state)
            return False
        except Exception as exc:
            if generation == self._generation:
                logger.error("submission for %s crashed: %r", self.barcode, exc)
                self.error = fallback
                self._transition(form_state)
            raise
        if generation != self._generation:
            return True
        self.last_result = product
        self._haptics.success()
        self._finish()
        return True

    def close(self) -> None:
        if self.state == ModalState.IDLE:
            return
        self._generation += 1
        self._finish()

    def _finish(self) -> None:
        self._reset()
        self._transition(ModalState.IDLE)
        for listener in list(self._close_listeners):
            listener()
