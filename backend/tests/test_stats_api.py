"""
Statistics API tests
"""
import pytest
from httpx import AsyncClient

from conftest import order_payload, task_payload


@pytest.mark.asyncio
async def test_summary_is_scoped_for_users(
    client: AsyncClient, admin_headers, regular_user, user_headers
):
    await client.post('/api/v1/tasks/', json=task_payload(progress_percent=100), headers=admin_headers)
    await client.post(
        '/api/v1/tasks/',
        json=task_payload(assignee=regular_user['name']),
        headers=admin_headers
    )

    admin_view = await client.get('/api/v1/stats/tasks/summary', headers=admin_headers)
    user_view = await client.get('/api/v1/stats/tasks/summary', headers=user_headers)

    assert admin_view.json()['total'] == 2
    assert admin_view.json()['completed'] == 1
    assert user_view.json()['total'] == 1
    assert user_view.json()['completed'] == 0


@pytest.mark.asyncio
async def test_user_performance_is_admin_only(client: AsyncClient, admin_headers, user_headers):
    await client.post('/api/v1/tasks/', json=task_payload(progress_percent=100), headers=admin_headers)

    assert (await client.get('/api/v1/stats/tasks/users', headers=user_headers)).status_code == 403

    response = await client.get('/api/v1/stats/tasks/users', headers=admin_headers)
    assert response.status_code == 200
    assert response.json()[0]['name'] == 'Jane Doe'
    assert response.json()[0]['completion_rate'] == 100.0


@pytest.mark.asyncio
async def test_pdca_distribution(client: AsyncClient, admin_headers):
    await client.post('/api/v1/tasks/', json=task_payload(pdca_stage='Check'), headers=admin_headers)

    response = await client.get('/api/v1/stats/tasks/pdca?period=7days', headers=admin_headers)

    assert response.status_code == 200
    counts = {s['stage']: s['count'] for s in response.json()['stages']}
    assert counts['Check'] == 1

    bad = await client.get('/api/v1/stats/tasks/pdca?period=2weeks', headers=admin_headers)
    assert bad.status_code == 400


@pytest.mark.asyncio
async def test_monthly_orders(client: AsyncClient, user_headers):
    await client.post('/api/v1/orders/', json=order_payload(total_price=200), headers=user_headers)

    response = await client.get('/api/v1/stats/orders/monthly?months=3', headers=user_headers)

    assert response.status_code == 200
    months = response.json()
    assert len(months) == 3
    assert months[-1]['total'] == 1
    assert months[-1]['value'] == 200.0


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get('/health')
    assert response.status_code == 200
    assert response.json()['status'] == 'healthy'
    assert 'database' in response.json()
