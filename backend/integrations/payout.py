"""
打款通道客户端
用于押金退款的银行转账，调用方需提供幂等键，超时重试不会重复打款
"""
import time
import uuid
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict

import requests

from common.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


@dataclass
class PayoutResult:
    success: bool
    external_transaction_id: str
    message: str = ''


class PayoutClient:
    """
    打款通道API

    请求: POST {base_url}/payouts
        headers: Authorization: Bearer <api_key>, Idempotency-Key: <key>
        body: {amount, currency, reference, beneficiary: {...}}
    响应: {"status": "succeeded", "transaction_id": "...", "message": "..."}
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Args:
            config: 配置字典，包含以下字段：
                - base_url: 打款通道地址
                - api_key: 访问密钥
                - timeout: 请求超时（秒）
                - use_mock: 是否使用模拟打款
                - currency: 币种
        """
        self.base_url = (config.get('base_url') or '').rstrip('/')
        self.api_key = config.get('api_key', '')
        self.timeout = config.get('timeout', 15)
        self.use_mock = bool(config.get('use_mock', False))
        self.currency = config.get('currency', 'CNY')
        self.retries = config.get('retries', 1)

    @classmethod
    def from_settings(cls):
        from django.conf import settings
        config = {
            'base_url': getattr(settings, 'PAYOUT_RAIL_URL', ''),
            'api_key': getattr(settings, 'PAYOUT_RAIL_API_KEY', ''),
            'timeout': getattr(settings, 'PAYOUT_RAIL_TIMEOUT', 15),
            'use_mock': getattr(settings, 'PAYOUT_USE_MOCK', False),
            'currency': getattr(settings, 'PAYOUT_CURRENCY', 'CNY'),
            'retries': getattr(settings, 'PAYOUT_RAIL_RETRIES', 1),
        }
        return cls(config)

    def _headers(self, idempotency_key: str) -> Dict[str, str]:
        return {
            'Content-Type': 'application/json',
            'Authorization': f'Bearer {self.api_key}',
            'Idempotency-Key': idempotency_key,
        }

    def _post_json(self, url, body, headers):
        # 同一幂等键重试，通道侧保证只打款一次
        last_error = None
        for attempt in range(self.retries + 1):
            try:
                response = requests.post(url, headers=headers, json=body, timeout=self.timeout)
                if response.status_code < 500:
                    return response
                last_error = f'HTTP {response.status_code}'
            except requests.RequestException as e:
                last_error = str(e)
            if attempt < self.retries:
                time.sleep(0.5 * (2 ** attempt))
        raise ExternalServiceError(f'打款通道请求失败: {last_error}')

    def send_payout(self, bank_account, amount: Decimal, idempotency_key: str, reference: str = '') -> PayoutResult:
        """
        发起打款

        Args:
            bank_account: 收款账户（users.BankAccount）
            amount: 打款金额
            idempotency_key: 幂等键
            reference: 业务单号，显示在转账附言中

        Returns:
            PayoutResult: 打款成功结果

        Raises:
            ExternalServiceError: 通道不可达或拒绝打款
        """
        if self.use_mock:
            txn_id = f'MOCK-{uuid.uuid4().hex[:16].upper()}'
            logger.info(f'模拟打款: ref={reference}, amount={amount}, txn={txn_id}')
            return PayoutResult(success=True, external_transaction_id=txn_id, message='mock payout')

        if not self.base_url:
            raise ExternalServiceError('打款通道未配置')

        body = {
            'amount': str(amount),
            'currency': self.currency,
            'reference': reference,
            'beneficiary': {
                'bank_name': bank_account.bank_name,
                'account_number': bank_account.account_number,
                'account_holder_name': bank_account.account_holder_name,
                'routing_number': bank_account.routing_number,
            },
        }
        logger.debug(f'打款请求: ref={reference}, amount={amount}, key={idempotency_key}')
        response = self._post_json(f'{self.base_url}/payouts', body, self._headers(idempotency_key))

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.status_code not in (200, 201):
            message = data.get('message') or response.text[:200]
            logger.error(f'打款被拒绝: ref={reference}, status={response.status_code}, msg={message}')
            raise ExternalServiceError(f'打款通道拒绝请求: {message}')

        if data.get('status') != 'succeeded' or not data.get('transaction_id'):
            message = data.get('message') or f'status={data.get("status")}'
            logger.error(f'打款失败: ref={reference}, msg={message}')
            raise ExternalServiceError(f'打款失败: {message}')

        logger.info(f'打款成功: ref={reference}, amount={amount}, txn={data["transaction_id"]}')
        return PayoutResult(
            success=True,
            external_transaction_id=str(data['transaction_id']),
            message=data.get('message', ''),
        )
