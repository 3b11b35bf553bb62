"""
Audit logging utilities for tracking critical operations.

This module provides specialized logging for:
- Violation operations (file, respond, revise, escalate, resolve)
- Resolution operations (open, decide)
- Deposit refund operations (create, recalculate, process, reopen, payout failure)
- Order status changes
"""

import logging
import json
from typing import Dict, Optional

# Get the settlement audit logger
settlement_audit_logger = logging.getLogger('settlement_audit')


class AuditLogger:
    """
    Centralized audit logging for critical operations.

    Provides methods for logging different types of operations with
    consistent formatting and context information.
    """

    @staticmethod
    def log_violation_filed(violation_id: int, order_item_id: int, violation_type: str, penalty_amount, user_id: Optional[int] = None):
        """
        Log violation filing.

        Args:
            violation_id: Violation ID
            order_item_id: Disputed order item ID
            violation_type: damaged / late_return / not_returned
            penalty_amount: Computed penalty amount
            user_id: Provider user ID (optional)
        """
        settlement_audit_logger.info(
            f'Violation filed: violation_id={violation_id}, order_item_id={order_item_id}, '
            f'type={violation_type}, penalty={penalty_amount}',
            extra={
                'event': 'violation_filed',
                'violation_id': violation_id,
                'order_item_id': order_item_id,
                'violation_type': violation_type,
                'penalty_amount': str(penalty_amount),
                'user_id': user_id,
            }
        )

    @staticmethod
    def log_violation_status_changed(violation_id: int, from_status: str, to_status: str, user_id: Optional[int] = None):
        """
        Log violation status change.

        Args:
            violation_id: Violation ID
            from_status: Previous status
            to_status: New status
            user_id: User ID (optional)
        """
        settlement_audit_logger.info(
            f'Violation status changed: violation_id={violation_id}, {from_status} -> {to_status}',
            extra={
                'event': 'violation_status_changed',
                'violation_id': violation_id,
                'from_status': from_status,
                'to_status': to_status,
                'user_id': user_id,
            }
        )

    @staticmethod
    def log_violation_revised(violation_id: int, penalty_percentage, penalty_amount, user_id: Optional[int] = None):
        settlement_audit_logger.info(
            f'Violation revised: violation_id={violation_id}, percentage={penalty_percentage}, penalty={penalty_amount}',
            extra={
                'event': 'violation_revised',
                'violation_id': violation_id,
                'penalty_percentage': str(penalty_percentage),
                'penalty_amount': str(penalty_amount),
                'user_id': user_id,
            }
        )

    @staticmethod
    def log_violation_escalated(violation_id: int, by_role: str, first: bool, user_id: Optional[int] = None):
        """
        Log escalation request.

        Args:
            violation_id: Violation ID
            by_role: provider / customer
            first: True when this call performed the transition
            user_id: User ID (optional)
        """
        settlement_audit_logger.info(
            f'Violation escalated: violation_id={violation_id}, by={by_role}, first={first}',
            extra={
                'event': 'violation_escalated',
                'violation_id': violation_id,
                'by_role': by_role,
                'first': first,
                'user_id': user_id,
            }
        )

    @staticmethod
    def log_resolution_opened(resolution_id: int, violation_id: int, admin_id: Optional[int] = None):
        settlement_audit_logger.info(
            f'Resolution opened: resolution_id={resolution_id}, violation_id={violation_id}',
            extra={
                'event': 'resolution_opened',
                'resolution_id': resolution_id,
                'violation_id': violation_id,
                'admin_id': admin_id,
            }
        )

    @staticmethod
    def log_resolution_decided(resolution_id: int, resolution_type: str, customer_fine, provider_compensation, admin_id: Optional[int] = None):
        """
        Log a binding arbitration decision.

        Args:
            resolution_id: Resolution ID
            resolution_type: uphold_claim / reject_claim / compromise
            customer_fine: Fine charged to the customer
            provider_compensation: Compensation granted to the provider
            admin_id: Admin user ID (optional)
        """
        settlement_audit_logger.info(
            f'Resolution decided: resolution_id={resolution_id}, type={resolution_type}, '
            f'fine={customer_fine}, compensation={provider_compensation}',
            extra={
                'event': 'resolution_decided',
                'resolution_id': resolution_id,
                'resolution_type': resolution_type,
                'customer_fine': str(customer_fine),
                'provider_compensation': str(provider_compensation),
                'admin_id': admin_id,
            }
        )

    @staticmethod
    def log_refund_created(refund_id: int, order_id: int, original_deposit):
        settlement_audit_logger.info(
            f'Deposit refund created: refund_id={refund_id}, order_id={order_id}, deposit={original_deposit}',
            extra={
                'event': 'refund_created',
                'refund_id': refund_id,
                'order_id': order_id,
                'original_deposit': str(original_deposit),
            }
        )

    @staticmethod
    def log_refund_recalculated(refund_id: int, total_penalty, refund_amount):
        settlement_audit_logger.info(
            f'Deposit refund recalculated: refund_id={refund_id}, penalty={total_penalty}, refund={refund_amount}',
            extra={
                'event': 'refund_recalculated',
                'refund_id': refund_id,
                'total_penalty': str(total_penalty),
                'refund_amount': str(refund_amount),
            }
        )

    @staticmethod
    def log_refund_processed(refund_id: int, status: str, amount, external_transaction_id: str = '', admin_id: Optional[int] = None):
        """
        Log refund processing outcome.

        Args:
            refund_id: Refund ID
            status: completed / failed
            amount: Refund amount
            external_transaction_id: Payout transaction reference
            admin_id: Admin user ID (optional)
        """
        settlement_audit_logger.info(
            f'Deposit refund processed: refund_id={refund_id}, status={status}, amount={amount}, txn={external_transaction_id}',
            extra={
                'event': 'refund_processed',
                'refund_id': refund_id,
                'status': status,
                'amount': str(amount),
                'external_transaction_id': external_transaction_id,
                'admin_id': admin_id,
            }
        )

    @staticmethod
    def log_payout_failed(refund_id: int, reason: str, admin_id: Optional[int] = None):
        settlement_audit_logger.warning(
            f'Payout failed: refund_id={refund_id}, reason={reason}',
            extra={
                'event': 'payout_failed',
                'refund_id': refund_id,
                'reason': reason,
                'admin_id': admin_id,
            }
        )

    @staticmethod
    def log_refund_reopened(refund_id: int, from_status: str, admin_id: Optional[int] = None):
        settlement_audit_logger.info(
            f'Deposit refund reopened: refund_id={refund_id}, from={from_status}',
            extra={
                'event': 'refund_reopened',
                'refund_id': refund_id,
                'from_status': from_status,
                'admin_id': admin_id,
            }
        )

    @staticmethod
    def log_order_status_changed(order_id: int, from_status: str, to_status: str, user_id: Optional[int] = None):
        """
        Log order status change.

        Args:
            order_id: Order ID
            from_status: Previous status
            to_status: New status
            user_id: User ID (optional)
        """
        settlement_audit_logger.info(
            f'Order status changed: order_id={order_id}, {from_status} -> {to_status}',
            extra={
                'event': 'order_status_changed',
                'order_id': order_id,
                'from_status': from_status,
                'to_status': to_status,
                'user_id': user_id,
            }
        )

    @staticmethod
    def log_admin_action(action: str, resource_type: str, resource_id: int, admin_id: int, details: Optional[Dict] = None):
        """
        Log admin action.

        Args:
            action: Action type (replay, recalculate, etc.)
            resource_type: Type of resource (resolution, refund, etc.)
            resource_id: Resource ID
            admin_id: Admin user ID
            details: Additional details (optional)
        """
        details_str = json.dumps(details, default=str) if details else ''
        settlement_audit_logger.info(
            f'Admin action: {action} {resource_type} {resource_id} by admin {admin_id}',
            extra={
                'event': 'admin_action',
                'action': action,
                'resource_type': resource_type,
                'resource_id': resource_id,
                'admin_id': admin_id,
                'details': details_str,
            }
        )
