from django.test import TestCase
from rest_framework.test import APIClient

from disputes.models import Violation
from orders import services as order_services
from orders.tests.helpers import create_parties, create_order
from users.models import User


class ViolationApiTests(TestCase):
    def setUp(self):
        self.customer, self.provider, self.admin = create_parties()
        self.stranger = User.objects.create_user(username='stranger', password='pass', role='customer')
        self.order = create_order(self.customer, self.provider)
        self.item = self.order.items.first()
        order_services.start_return(self.order.id, self.customer)
        self.client = APIClient()

    def _file(self, **overrides):
        payload = {
            'order_item_id': self.item.id,
            'violation_type': 'damaged',
            'description': '<b>外壳破损</b>',
            'penalty_percentage': '30',
            'damage_percentage': '30',
            'evidence': [{'url': 'https://cdn.example.com/e/1.jpg'}],
        }
        payload.update(overrides)
        self.client.force_authenticate(user=self.provider)
        return self.client.post('/api/v1/violations/', payload, format='json')

    def test_provider_files_violation(self):
        resp = self._file()
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data['status'], 'pending')
        self.assertEqual(resp.data['penalty_amount'], '300000.00')
        self.assertEqual(resp.data['order_id'], self.order.id)
        self.assertEqual(len(resp.data['evidence']), 1)
        # 描述中的HTML被转义
        self.assertEqual(resp.data['description'], '&lt;b&gt;外壳破损&lt;/b&gt;')

        resp_dup = self._file()
        self.assertEqual(resp_dup.status_code, 409)
        self.assertEqual(resp_dup.data.get('error_code'), 'INVALID_CLAIM')

    def test_error_precedence(self):
        self.client.force_authenticate(user=self.customer)
        resp = self.client.post('/api/v1/violations/', {
            'order_item_id': self.item.id,
            'violation_type': 'damaged',
            'description': '',
            'penalty_percentage': '150',
        }, format='json')
        self.assertEqual(resp.status_code, 403)

        resp_invalid = self._file(penalty_percentage='150')
        self.assertEqual(resp_invalid.status_code, 400)
        self.assertEqual(resp_invalid.data.get('error_code'), 'VALIDATION_ERROR')

    def test_customer_accepts_then_repeat_is_conflict(self):
        violation_id = self._file().data['id']

        self.client.force_authenticate(user=self.stranger)
        resp_stranger = self.client.post(f'/api/v1/violations/{violation_id}/respond/', {'accept': True}, format='json')
        self.assertEqual(resp_stranger.status_code, 403)

        self.client.force_authenticate(user=self.customer)
        resp = self.client.post(f'/api/v1/violations/{violation_id}/respond/', {'accept': True}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['status'], 'customer_accepted')

        resp_again = self.client.post(f'/api/v1/violations/{violation_id}/respond/', {'accept': False, 'notes': '反悔'}, format='json')
        self.assertEqual(resp_again.status_code, 409)
        self.assertEqual(resp_again.data.get('error_code'), 'INVALID_TRANSITION')

        resp_refund = self.client.get('/api/v1/refunds/')
        self.assertEqual(resp_refund.status_code, 200)
        self.assertEqual(resp_refund.data['results'][0]['refund_amount'], '700000.00')

    def test_escalation_and_arbitration(self):
        violation_id = self._file().data['id']

        self.client.force_authenticate(user=self.customer)
        self.client.post(f'/api/v1/violations/{violation_id}/respond/', {'accept': False, 'notes': '归还时完好'}, format='json')

        self.client.force_authenticate(user=self.provider)
        resp = self.client.post(f'/api/v1/violations/{violation_id}/respond_to_rejection/', {'response': '见照片'}, format='json')
        self.assertEqual(resp.status_code, 200)
        resp = self.client.post(f'/api/v1/violations/{violation_id}/escalate/', {'reason': '申请仲裁'}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['status'], 'escalated')

        self.client.force_authenticate(user=self.customer)
        resp_repeat = self.client.post(f'/api/v1/violations/{violation_id}/escalate/', {'reason': '同意仲裁'}, format='json')
        self.assertEqual(resp_repeat.status_code, 200)
        self.assertEqual(resp_repeat.data['customer_escalation_reason'], '同意仲裁')

        resp_forbidden = self.client.post(f'/api/v1/violations/{violation_id}/resolution/')
        self.assertEqual(resp_forbidden.status_code, 403)

        self.client.force_authenticate(user=self.admin)
        resp_open = self.client.post(f'/api/v1/violations/{violation_id}/resolution/')
        self.assertEqual(resp_open.status_code, 201)
        resolution_id = resp_open.data['id']

        resp_list = self.client.get('/api/v1/resolutions/', {'status': 'pending'})
        self.assertEqual(len(resp_list.data['results']), 1)

        resp_decide = self.client.put(f'/api/v1/resolutions/{resolution_id}/decide/', {
            'resolution_type': 'compromise',
            'customer_fine_amount': '150000',
            'provider_compensation_amount': '150000',
            'reason': '双方均有责任',
        }, format='json')
        self.assertEqual(resp_decide.status_code, 200)
        self.assertEqual(resp_decide.data['status'], 'completed')
        self.assertEqual(resp_decide.data['violation_status'], 'resolved')
        self.assertEqual(resp_decide.data['customer_fine_amount'], '150000.00')

        resp_conflict = self.client.put(f'/api/v1/resolutions/{resolution_id}/decide/', {
            'resolution_type': 'reject_claim',
            'reason': '改判',
        }, format='json')
        self.assertEqual(resp_conflict.status_code, 409)
        self.assertEqual(resp_conflict.data.get('error_code'), 'RESOURCE_CONFLICT')

        self.assertEqual(Violation.objects.get(id=violation_id).penalty_amount, 150000)

    def test_evidence_endpoint(self):
        violation_id = self._file().data['id']

        self.client.force_authenticate(user=self.customer)
        resp = self.client.post(f'/api/v1/violations/{violation_id}/evidence/', {
            'url': 'https://cdn.example.com/e/customer.mp4',
        }, format='json')
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data['uploaded_by'], 'customer')
        self.assertEqual(resp.data['media_kind'], 'video')

        resp_list = self.client.get(f'/api/v1/violations/{violation_id}/evidence/')
        self.assertEqual(resp_list.status_code, 200)
        self.assertEqual([e['uploaded_by'] for e in resp_list.data], ['provider', 'customer'])

        self.client.force_authenticate(user=self.stranger)
        resp_forbidden = self.client.post(f'/api/v1/violations/{violation_id}/evidence/', {
            'url': 'https://cdn.example.com/e/x.jpg',
        }, format='json')
        self.assertEqual(resp_forbidden.status_code, 403)
        self.assertEqual(self.client.get(f'/api/v1/violations/{violation_id}/evidence/').status_code, 404)

    def test_list_is_scoped_and_filterable(self):
        self._file()

        self.client.force_authenticate(user=self.stranger)
        self.assertEqual(len(self.client.get('/api/v1/violations/').data['results']), 0)

        self.client.force_authenticate(user=self.customer)
        resp = self.client.get('/api/v1/violations/', {'status': 'pending'})
        self.assertEqual(len(resp.data['results']), 1)
        resp = self.client.get('/api/v1/violations/', {'status': 'escalated'})
        self.assertEqual(len(resp.data['results']), 0)

        self.client.force_authenticate(user=self.admin)
        resp = self.client.get('/api/v1/violations/', {'order_item__order': self.order.id})
        self.assertEqual(len(resp.data['results']), 1)

    def test_batch_endpoint(self):
        self._file()
        resp = self.client.post('/api/v1/violations/batch/', {
            'order_id': self.order.id,
            'items': [{
                'order_item_id': self.item.id,
                'violation_type': 'late_return',
                'description': '逾期',
                'penalty_percentage': '5',
            }],
        }, format='json')
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data['created'], [])
        self.assertEqual(resp.data['skipped'], [self.item.id])

    def test_batch_descriptions_are_escaped(self):
        order = create_order(self.customer, self.provider, status='returning')
        item = order.items.first()
        self.client.force_authenticate(user=self.provider)
        resp = self.client.post('/api/v1/violations/batch/', {
            'order_id': order.id,
            'items': [{
                'order_item_id': item.id,
                'violation_type': 'late_return',
                'description': '<script>alert(1)</script>逾期',
                'penalty_percentage': '5',
                'evidence': [{'url': 'https://cdn.example.com/e/2.jpg'}],
            }],
        }, format='json')
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(
            Violation.objects.get(order_item=item).description,
            '&lt;script&gt;alert(1)&lt;/script&gt;逾期'
        )
        self.assertEqual(len(resp.data['created'][0]['evidence']), 1)
