import pytest
from config import db
from errors import Forbidden, NotFound, ValidationError
from models import Like, Post
from posts import PostStore, extract_hashtags, extract_mentions

@pytest.fixture
def create(client, headers):
	def _create(user, content, **extra):
		body = {'content': content}
		body.update(extra)
		response = client.post('/posts/create', headers=headers(user['token']), json=body)
		assert response.status_code == 201, response.get_json()
		return response.get_json()['post']

	return _create

def test_extract_hashtags_is_case_insensitive_and_deduplicated():
	assert extract_hashtags('Hello #World #world') == ['world']
	assert extract_hashtags('#b then #a then #B') == ['b', 'a']
	assert extract_hashtags('no tags here') == []

def test_extract_mentions():
	assert extract_mentions('hey @bob and @carol, @bob again') == ['bob', 'carol']

def test_create_post_extracts_hashtags(alice, create):
	post = create(alice, 'hi #Test')
	assert post['hashtags'] == ['test']
	assert post['author']['username'] == 'alice'
	assert post['stats'] == {'likesCount': 0, 'repliesCount': 0, 'repostsCount': 0}
	assert post['visibility'] == 'public'
	assert post['isReply'] is False

def test_create_post_length_limits(client, alice, headers, create):
	assert create(alice, 'x' * 280)['content'] == 'x' * 280

	response = client.post('/posts/create', headers=headers(alice['token']), json={'content': 'x' * 281})
	assert response.status_code == 400

	response = client.post('/posts/create', headers=headers(alice['token']), json={'content': ''})
	assert response.status_code == 400

def test_create_post_requires_auth(client):
	assert client.post('/posts/create', json={'content': 'hi'}).status_code == 401

def test_create_post_with_images_and_mentions(alice, bob, create):
	post = create(alice, 'hello @bob @nobody', images=[
		{'url': 'https://img.x/1.png', 'alt': 'one'},
		{'url': 'https://img.x/2.png'},
	])
	assert post['mentions'] == ['bob']
	assert post['images'] == [
		{'url': 'https://img.x/1.png', 'alt': 'one'},
		{'url': 'https://img.x/2.png', 'alt': ''},
	]

def test_reply_updates_parent(client, alice, bob, create):
	parent = create(alice, 'root post')
	reply = create(bob, 'a reply', parentPost=parent['id'])
	assert reply['isReply'] is True
	assert reply['parentPost'] == parent['id']

	post = client.get('/posts/{}'.format(parent['id'])).get_json()['post']
	assert post['stats']['repliesCount'] == 1
	assert [r['id'] for r in post['replies']] == [reply['id']]

def test_reply_to_missing_parent(client, alice, headers):
	response = client.post('/posts/create', headers=headers(alice['token']), json={'content': 'hi', 'parentPost': 999})
	assert response.status_code == 404

def test_author_post_count_tracks_non_replies(client, alice, create):
	first = create(alice, 'one')
	create(alice, 'two')
	create(alice, 'reply', parentPost=first['id'])

	user = client.get('/users/alice').get_json()['user']
	assert user['stats']['postsCount'] == 2

def test_public_posts_scenario(client, alice, bob, headers, create):
	post = create(alice, 'hi #Test')

	posts = client.get('/posts/public').get_json()['posts']
	assert [p['id'] for p in posts] == [post['id']]
	assert 'isLiked' not in posts[0]

	response = client.post('/posts/{}/like'.format(post['id']), headers=headers(bob['token']))
	assert response.get_json() == {'message': 'Post liked', 'isLiked': True, 'likesCount': 1}

	posts = client.get('/posts/public', headers=headers(bob['token'])).get_json()['posts']
	assert posts[0]['isLiked'] is True
	assert posts[0]['isReposted'] is False

	response = client.post('/posts/{}/like'.format(post['id']), headers=headers(bob['token']))
	assert response.get_json()['isLiked'] is False
	assert response.get_json()['likesCount'] == 0

def test_like_toggle_sequence_keeps_count_in_sync(app, client, alice, bob, headers, create):
	post = create(alice, 'toggle me')
	url = '/posts/{}/like'.format(post['id'])

	states = [client.post(url, headers=headers(bob['token'])).get_json() for _ in range(3)]
	assert [s['isLiked'] for s in states] == [True, False, True]
	assert states[-1]['likesCount'] == 1

	assert Like.query.filter_by(post_id=post['id']).count() == 1
	assert db.session.get(Post, post['id']).likes_count == 1

def test_like_missing_post(client, alice, headers):
	assert client.post('/posts/999/like', headers=headers(alice['token'])).status_code == 404

def test_repost_toggle(client, alice, bob, headers, create):
	post = create(alice, 'share me')
	url = '/posts/{}/repost'.format(post['id'])

	first = client.post(url, headers=headers(bob['token'])).get_json()
	assert first['isReposted'] is True
	assert first['repostsCount'] == 1

	second = client.post(url, headers=headers(bob['token'])).get_json()
	assert second['isReposted'] is False
	assert second['repostsCount'] == 0

def test_delete_only_by_author(client, alice, bob, headers, create):
	post = create(alice, 'mine')
	url = '/posts/{}'.format(post['id'])

	response = client.delete(url, headers=headers(bob['token']))
	assert response.status_code == 403
	assert response.get_json()['code'] == 'FORBIDDEN'

	assert client.delete(url, headers=headers(alice['token'])).status_code == 200
	assert client.get(url).status_code == 404
	assert client.delete(url, headers=headers(alice['token'])).status_code == 404

def test_delete_reply_updates_parent_and_detaches_children(client, alice, bob, headers, create):
	parent = create(alice, 'root')
	reply = create(bob, 'reply', parentPost=parent['id'])
	nested = create(alice, 'nested', parentPost=reply['id'])

	client.post('/posts/{}/like'.format(reply['id']), headers=headers(alice['token']))
	assert client.delete('/posts/{}'.format(reply['id']), headers=headers(bob['token'])).status_code == 200

	assert client.get('/posts/{}'.format(parent['id'])).get_json()['post']['stats']['repliesCount'] == 0
	assert client.get('/posts/{}'.format(nested['id'])).get_json()['post']['parentPost'] is None

def test_edit_post_keeps_history(client, alice, bob, headers, create):
	post = create(alice, 'first #one')
	url = '/posts/{}'.format(post['id'])

	response = client.patch(url, headers=headers(bob['token']), json={'content': 'hijack'})
	assert response.status_code == 403

	response = client.patch(url, headers=headers(alice['token']), json={'content': 'second #Two'})
	edited = response.get_json()['post']
	assert response.status_code == 200
	assert edited['content'] == 'second #Two'
	assert edited['hashtags'] == ['two']
	assert edited['isEdited'] is True
	assert [e['content'] for e in edited['editHistory']] == ['first #one']

def test_private_post_visibility(client, alice, bob, headers, create):
	post = create(alice, 'secret', visibility='private')
	url = '/posts/{}'.format(post['id'])

	assert client.get(url).status_code == 403
	assert client.get(url, headers=headers(bob['token'])).status_code == 403
	assert client.get(url, headers=headers(alice['token'])).status_code == 200

def test_followers_post_visibility(client, alice, bob, headers, create):
	post = create(alice, 'friends only', visibility='followers')
	url = '/posts/{}'.format(post['id'])

	assert client.get(url, headers=headers(bob['token'])).status_code == 403
	client.post('/users/alice/follow', headers=headers(bob['token']))
	assert client.get(url, headers=headers(bob['token'])).status_code == 200

def test_timeline(client, alice, bob, register, headers, create):
	carol = register('carol')
	own = create(alice, 'mine')
	followed = create(bob, 'from bob', visibility='followers')
	create(bob, 'bob private', visibility='private')
	create(bob, 'bob reply', parentPost=own['id'])
	create(carol, 'from carol')

	client.post('/users/bob/follow', headers=headers(alice['token']))

	body = client.get('/posts/timeline', headers=headers(alice['token'])).get_json()
	assert [p['id'] for p in body['posts']] == [followed['id'], own['id']]
	assert body['total'] == 2
	assert body['page'] == 1
	assert body['limit'] == 20
	assert body['posts'][0]['isLiked'] is False

def test_timeline_pagination(client, alice, headers, create):
	ids = [create(alice, 'post {}'.format(i))['id'] for i in range(5)]

	body = client.get('/posts/timeline?page=2&limit=2', headers=headers(alice['token'])).get_json()
	assert [p['id'] for p in body['posts']] == [ids[2], ids[1]]
	assert body['total'] == 5

def test_timeline_requires_auth(client):
	assert client.get('/posts/timeline').status_code == 401

def test_search_posts(client, alice, create):
	tagged = create(alice, 'loving #Python today')
	text = create(alice, 'python is fun')
	create(alice, 'hidden python', visibility='followers')
	create(alice, 'nothing relevant')

	body = client.get('/posts/search/python').get_json()
	assert [p['id'] for p in body['posts']] == [text['id'], tagged['id']]
	assert body['query'] == 'python'
	assert body['total'] == 2

def test_search_posts_by_hashtag_only(client, alice, create):
	post = create(alice, '#flask_tips rock')
	body = client.get('/posts/search/FLASK_TIPS').get_json()
	assert [p['id'] for p in body['posts']] == [post['id']]

def test_search_posts_requires_query(client):
	assert client.get('/posts/search/%20').status_code == 400

def test_store_delete_forbidden_and_missing(app, alice, bob):
	store = PostStore(db.session)
	post = store.create(alice['user']['id'], 'store level')

	with pytest.raises(Forbidden):
		store.delete(post.id, bob['user']['id'])
	with pytest.raises(NotFound):
		store.delete(12345, alice['user']['id'])

def test_store_counters_match_lists(app, alice, bob):
	store = PostStore(db.session)
	post = store.create(alice['user']['id'], 'counting')

	store.toggle_like(post.id, bob['user']['id'])
	store.toggle_like(post.id, alice['user']['id'])
	store.toggle_repost(post.id, bob['user']['id'])

	post = store.get(post.id)
	assert post.likes_count == len(post.likes) == 2
	assert post.reposts_count == len(post.reposts) == 1

def test_store_create_rejects_bad_content(app, alice):
	store = PostStore(db.session)

	with pytest.raises(ValidationError):
		store.create(alice['user']['id'], '')
	with pytest.raises(ValidationError):
		store.create(alice['user']['id'], 'x' * 281)
	with pytest.raises(ValidationError):
		store.create(alice['user']['id'], 'hi', visibility='friends')

	assert store.create(alice['user']['id'], 'x' * 280).content == 'x' * 280
	assert Post.query.count() == 1

def test_store_edit_rejects_bad_content(app, alice):
	store = PostStore(db.session)
	post = store.create(alice['user']['id'], 'original')

	with pytest.raises(ValidationError):
		store.edit(post.id, alice['user']['id'], '   ')
	with pytest.raises(ValidationError):
		store.edit(post.id, alice['user']['id'], 'y' * 281)

	assert store.get(post.id).content == 'original'

def test_oversized_ids_are_not_found(client, alice, headers):
	huge = 10 ** 30
	token = headers(alice['token'])

	assert client.get('/posts/{}'.format(huge)).status_code == 404
	assert client.post('/posts/{}/like'.format(huge), headers=token).status_code == 404
	assert client.post('/posts/{}/repost'.format(huge), headers=token).status_code == 404
	assert client.delete('/posts/{}'.format(huge), headers=token).status_code == 404
	assert client.patch('/posts/{}'.format(huge), headers=token, json={'content': 'x'}).status_code == 404

	response = client.post('/posts/create', headers=token, json={'content': 'hi', 'parentPost': huge})
	assert response.status_code == 400
	assert response.get_json()['details'][0]['field'] == 'parentPost'

def test_store_rejects_oversized_ids(app, alice):
	store = PostStore(db.session)
	with pytest.raises(ValidationError):
		store.create(alice['user']['id'], 'hi', parent_post_id=10 ** 30)
	with pytest.raises(NotFound):
		store.get(10 ** 30)

def test_hidden_post_cannot_be_liked_or_reposted(client, alice, bob, headers, create):
	post = create(alice, 'secret', visibility='private')

	for action in ('like', 'repost'):
		response = client.post('/posts/{}/{}'.format(post['id'], action), headers=headers(bob['token']))
		assert response.status_code == 403
		assert 'likesCount' not in response.get_json()

	assert Like.query.filter_by(post_id=post['id']).count() == 0
	own = client.post('/posts/{}/like'.format(post['id']), headers=headers(alice['token']))
	assert own.get_json()['likesCount'] == 1

def test_followers_post_can_be_liked_by_followers(client, alice, bob, headers, create):
	post = create(alice, 'friends only', visibility='followers')
	url = '/posts/{}/like'.format(post['id'])

	assert client.post(url, headers=headers(bob['token'])).status_code == 403
	client.post('/users/alice/follow', headers=headers(bob['token']))
	assert client.post(url, headers=headers(bob['token'])).get_json()['isLiked'] is True

def test_timestamps_are_naive_utc(app, alice):
	post = PostStore(db.session).create(alice['user']['id'], 'when')
	post = db.session.get(Post, post.id)
	assert post.created_at.tzinfo is None
	assert '+' not in post.created_at.isoformat()

def test_image_alt_must_be_text(client, alice, headers):
	response = client.post('/posts/create', headers=headers(alice['token']),
		json={'content': 'pic', 'images': [{'url': 'https://img.x/1.png', 'alt': 5}]})
	assert response.status_code == 400
	assert response.get_json()['details'][0]['field'] == 'images[0].alt'
