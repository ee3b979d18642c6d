"""
File API tests
"""
import pytest
from httpx import AsyncClient


PDF_BYTES = b'%PDF-1.4 minimal test document'


async def upload(client, headers, name='report.pdf', content=PDF_BYTES, mime='application/pdf', **data):
    return await client.post(
        '/api/v1/files/',
        files={'file': (name, content, mime)},
        data=data,
        headers=headers
    )


@pytest.mark.asyncio
async def test_upload_and_download(client: AsyncClient, user_headers, upload_dir):
    response = await upload(client, user_headers, ref_type='task', ref_id='task-1')

    assert response.status_code == 201
    data = response.json()
    assert data['original_filename'] == 'report.pdf'
    assert data['category'] == 'document'
    assert data['size'] == len(PDF_BYTES)
    assert data['ref_type'] == 'task'
    assert (upload_dir / data['filename']).exists()

    download = await client.get(data['url'], headers=user_headers)
    assert download.status_code == 200
    assert download.content == PDF_BYTES


@pytest.mark.asyncio
async def test_identical_upload_is_deduplicated(client: AsyncClient, user_headers):
    first = await upload(client, user_headers)
    second = await upload(client, user_headers)

    assert first.json()['id'] == second.json()['id']


@pytest.mark.asyncio
async def test_disallowed_extension(client: AsyncClient, user_headers):
    response = await upload(client, user_headers, name='script.exe', mime='application/octet-stream')
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_empty_file(client: AsyncClient, user_headers):
    response = await upload(client, user_headers, content=b'')

    assert response.status_code == 400
    assert response.json()['detail']['fields'] == ['file']


@pytest.mark.asyncio
async def test_files_are_private_to_their_owner(
    client: AsyncClient, user_headers, other_headers, admin_headers
):
    created = await upload(client, user_headers)
    file_id = created.json()['id']

    assert len((await client.get('/api/v1/files/', headers=user_headers)).json()) == 1
    assert (await client.get('/api/v1/files/', headers=other_headers)).json() == []
    assert len((await client.get('/api/v1/files/', headers=admin_headers)).json()) == 1

    response = await client.get(f'/api/v1/files/{file_id}', headers=other_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_removes_record_and_file(client: AsyncClient, user_headers, upload_dir):
    created = await upload(client, user_headers)
    data = created.json()

    response = await client.delete(f"/api/v1/files/{data['id']}", headers=user_headers)

    assert response.status_code == 200
    assert not (upload_dir / data['filename']).exists()
    assert (await client.get(f"/api/v1/files/{data['id']}", headers=user_headers)).status_code == 404
