"""
User management API tests
"""
import pytest
from httpx import AsyncClient

from conftest import task_payload


@pytest.mark.asyncio
async def test_users_endpoints_require_admin(client: AsyncClient, user_headers):
    response = await client.get('/api/v1/users/', headers=user_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_creates_and_lists_users(client: AsyncClient, admin_headers):
    response = await client.post('/api/v1/users/', json={
        'name': 'Max Mustermann',
        'email': 'max@example.com',
        'password': 'secret123',
        'role': 'admin'
    }, headers=admin_headers)

    assert response.status_code == 201
    assert response.json()['role'] == 'admin'

    response = await client.get('/api/v1/users/', params={'name': 'Max Mustermann'}, headers=admin_headers)
    assert response.status_code == 200
    users = response.json()
    assert [u['email'] for u in users] == ['max@example.com']
    assert 'password' not in users[0]


@pytest.mark.asyncio
async def test_rename_moves_tasks(client: AsyncClient, admin_headers, regular_user):
    await client.post(
        '/api/v1/tasks/',
        json=task_payload(assignee=regular_user['name']),
        headers=admin_headers
    )

    response = await client.patch(
        f"/api/v1/users/{regular_user['id']}",
        json={'name': 'Renamed Person'},
        headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()['name'] == 'Renamed Person'

    tasks = await client.get(
        '/api/v1/tasks/',
        params={'assignee': 'Renamed Person'},
        headers=admin_headers
    )
    assert len(tasks.json()) == 1


@pytest.mark.asyncio
async def test_update_rejects_taken_email(client: AsyncClient, admin_headers, regular_user, other_user):
    response = await client.patch(
        f"/api/v1/users/{regular_user['id']}",
        json={'email': other_user['email']},
        headers=admin_headers
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_user_cascades_to_tasks(client: AsyncClient, admin_headers, regular_user):
    for _ in range(2):
        await client.post(
            '/api/v1/tasks/',
            json=task_payload(assignee=regular_user['name']),
            headers=admin_headers
        )
    await client.post('/api/v1/tasks/', json=task_payload(assignee='Jane Doe'), headers=admin_headers)

    response = await client.delete(f"/api/v1/users/{regular_user['id']}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()['deleted_tasks'] == 2

    remaining = await client.get('/api/v1/tasks/', headers=admin_headers)
    assert [t['assignee'] for t in remaining.json()] == ['Jane Doe']

    response = await client.get(f"/api/v1/users/{regular_user['id']}", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(client: AsyncClient, admin_user, admin_headers):
    response = await client.delete(f"/api/v1/users/{admin_user['id']}", headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_deactivated_user_is_locked_out(client: AsyncClient, admin_headers, regular_user, user_headers):
    response = await client.patch(
        f"/api/v1/users/{regular_user['id']}",
        json={'status': 'inactive'},
        headers=admin_headers
    )
    assert response.status_code == 200

    response = await client.get('/api/v1/auth/me', headers=user_headers)
    assert response.status_code == 403
