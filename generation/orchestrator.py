"""
generation/orchestrator.py

Thin orchestration layer for one paid hairstyle generation.

Flow:
1. VALIDATING   - preconditions (generation.validator), nothing charged on failure
2. COST_LOOKUP  - static cost by generation type (variations do not matter)
3. DEDUCTING    - atomic credit deduction (salon.ledger)
4. GENERATING   - provider call
5. PERSISTING   - write the Generation record
6. DONE         - generation + credits used/remaining

Any stage can end in FAILED. Failures after the deduction give the
credits back with a refund ledger entry unless refunds are switched off
(REFUND_ON_FAILURE). Nothing is retried.

This module contains no provider or storage details - it only wires
together:
- generation.validator
- salon.ledger
- the provider chosen at startup

Version History:
    2025-11-04: Initial implementation
    2025-11-19: Compensating refunds, explicit stages
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from audit_log import audit, AuditEvent
from generation import validator
from generation.providers.base import AIProvider
from salon import config, ledger
from salon.auth import Principal
from salon.config import get_credit_cost
from salon.db import get_db
from salon.errors import ServiceError, InsufficientCredits, PersistenceError
from salon.models import Generation, new_id


class Stage(Enum):
    VALIDATING = auto()
    COST_LOOKUP = auto()
    DEDUCTING = auto()
    GENERATING = auto()
    PERSISTING = auto()
    DONE = auto()
    FAILED = auto()


@dataclass
class GenerationOutcome:
    """Result of a completed orchestration."""
    generation: Generation
    credits_used: int
    credits_remaining: int

    def to_dict(self) -> dict:
        return {
            'generation': self.generation.to_dict(),
            'credits': {
                'used': self.credits_used,
                'remaining': self.credits_remaining,
            },
        }


class GenerationOrchestrator:
    """
    Runs validation -> cost -> deduction -> provider -> persistence.

    Usage:
        orchestrator = GenerationOrchestrator(create_ai_provider())
        outcome = orchestrator.run(principal, request.get_json())
    """

    def __init__(self, provider: AIProvider, refund_on_failure: Optional[bool] = None):
        self.provider = provider
        self.refund_on_failure = (
            config.REFUND_ON_FAILURE if refund_on_failure is None else refund_on_failure
        )
        self.stage = Stage.VALIDATING

    def run(self, principal: Principal, body: dict, style_transfer: bool = False) -> GenerationOutcome:
        """
        Execute one generation.

        Raises:
            ServiceError subclass describing the failed stage
        """
        self.stage = Stage.VALIDATING
        try:
            return self._run(principal, body, style_transfer)
        except ServiceError as e:
            failed_at = self.stage
            self.stage = Stage.FAILED
            print(f"[Generation] FAILED at {failed_at.name}: {e.code}")
            raise

    def _run(self, principal: Principal, body: dict, style_transfer: bool) -> GenerationOutcome:
        req = validator.validate(principal, body, style_transfer=style_transfer)
        salon_id = req.salon.id

        audit.log_request_event(
            AuditEvent.GENERATION_REQUESTED,
            salon_id=salon_id,
            user_id=principal.principal_id,
            details={
                'generation_type': req.generation_type,
                'variations': req.variations,
                'image_id': req.image.id,
                'hair_style_id': req.hair_style.id if req.hair_style else None,
            },
        )

        self.stage = Stage.COST_LOOKUP
        cost = get_credit_cost(req.generation_type)
        print(f"[Generation] Credit cost for {req.generation_type}: {cost}")

        self.stage = Stage.DEDUCTING
        generation_id = new_id()
        try:
            remaining = ledger.deduct_credits(
                salon_id, cost, notes=req.generation_type, generation_id=generation_id
            )
        except InsufficientCredits as e:
            audit.log_request_event(
                AuditEvent.CREDITS_INSUFFICIENT,
                salon_id=salon_id,
                user_id=principal.principal_id,
                details={'required': e.required, 'available': e.available},
            )
            raise

        audit.log_request_event(
            AuditEvent.CREDITS_DEDUCTED,
            salon_id=salon_id,
            user_id=principal.principal_id,
            details={'amount': cost, 'balance_after': remaining, 'generation_id': generation_id},
        )

        self.stage = Stage.GENERATING
        print(f"[Generation] Starting {req.generation_type} generation {generation_id} for salon {salon_id}")
        try:
            result = self.provider.generate(
                req.image.url,
                prompt=req.prompt,
                style_ref=req.style_ref,
                variations=req.variations,
            )
        except ServiceError as e:
            self._compensate(e, principal, salon_id, cost, generation_id)
            raise

        self.stage = Stage.PERSISTING
        db = get_db()
        try:
            generation = Generation(
                id=generation_id,
                salon_id=salon_id,
                input_image_id=req.image.id,
                prompt=req.prompt,
                hair_style_id=req.hair_style.id if req.hair_style else None,
                generation_type=req.generation_type,
                variations=req.variations,
                output_image_path=result.output_ref,
                processing_time=result.duration_ms,
                credit_cost=cost,
            )
            db.add(generation)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            print(f"[Generation] Failed to save generation {generation_id}: {e}")
            error = PersistenceError()
            self._compensate(error, principal, salon_id, cost, generation_id)
            raise error from e

        self.stage = Stage.DONE
        print(f"[Generation] Generation {generation_id} completed in {result.duration_ms}ms")
        audit.log_request_event(
            AuditEvent.GENERATION_COMPLETED,
            salon_id=salon_id,
            user_id=principal.principal_id,
            details={
                'generation_id': generation_id,
                'generation_type': req.generation_type,
                'variations': req.variations,
                'credit_cost': cost,
                'processing_time_ms': result.duration_ms,
                'provider': self.provider.name,
            },
        )

        return GenerationOutcome(
            generation=generation,
            credits_used=cost,
            credits_remaining=remaining,
        )

    def _compensate(
        self,
        error: ServiceError,
        principal: Principal,
        salon_id: str,
        cost: int,
        generation_id: str
    ) -> None:
        """Refund a failed, already-charged generation (if enabled)."""
        refunded = False

        if self.refund_on_failure:
            try:
                balance = ledger.refund_credits(salon_id, cost, generation_id=generation_id)
                refunded = True
                error.details['creditsRemaining'] = balance
                audit.log_request_event(
                    AuditEvent.CREDITS_REFUNDED,
                    salon_id=salon_id,
                    user_id=principal.principal_id,
                    details={'amount': cost, 'balance_after': balance, 'generation_id': generation_id},
                )
            except ServiceError as refund_error:
                # The original failure is what the client sees
                print(f"[Generation] Refund for {generation_id} failed: {refund_error.message}")

        error.details['creditsRefunded'] = cost if refunded else 0

        audit.log_request_event(
            AuditEvent.GENERATION_FAILED,
            salon_id=salon_id,
            user_id=principal.principal_id,
            details={
                'generation_id': generation_id,
                'error_type': error.code,
                'refunded': refunded,
                'provider': self.provider.name,
            },
        )
