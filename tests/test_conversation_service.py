"""Tests for the per-match conversation log."""

import pytest

from models.message import Message
from utils.errors import InvalidInputError, NotFoundError, UnauthorizedError


@pytest.fixture
def matched_pair(services, make_profile):
    a = make_profile('Ann')
    b = make_profile('Bob')
    services.swipe_service.record_swipe(a.id, b.id, 'like')
    match = services.swipe_service.record_swipe(b.id, a.id, 'like').match_result.match
    return a, b, match


class TestAppendMessage:

    def test_stores_message_and_bumps_activity(self, services, matched_pair):
        a, b, match = matched_pair

        message = services.conversation_service.append_message(match.id, a.id, '  hi  ')

        assert message.id is not None
        assert message.content == 'hi'
        assert message.sender_id == a.id
        assert message.is_read is False
        assert services.match_registry.get_match(match.id).last_activity_at == message.created_at

    def test_non_participant_is_rejected_without_side_effect(self, services, matched_pair, make_profile):
        _, _, match = matched_pair
        stranger = make_profile('Stranger')

        with pytest.raises(UnauthorizedError):
            services.conversation_service.append_message(match.id, stranger.id, 'hello')
        assert Message.query.count() == 0

    @pytest.mark.parametrize('content', ['', '   ', None, 42])
    def test_empty_content_is_rejected(self, services, matched_pair, content):
        a, _, match = matched_pair
        with pytest.raises(InvalidInputError):
            services.conversation_service.append_message(match.id, a.id, content)
        assert Message.query.count() == 0

    def test_too_long_content_is_rejected(self, services, matched_pair):
        a, _, match = matched_pair
        with pytest.raises(InvalidInputError):
            services.conversation_service.append_message(match.id, a.id, 'x' * 4001)

    def test_content_is_stored_as_sent(self, services, matched_pair):
        a, b, match = matched_pair
        text = 'fish & chips? 3 < 5 <b>really</b>'

        services.conversation_service.append_message(match.id, a.id, text)

        stored = services.conversation_service.list_messages(match.id, b.id)
        assert [m.content for m in stored] == [text]

    def test_length_limit_applies_to_trimmed_content(self, services, matched_pair):
        a, _, match = matched_pair

        message = services.conversation_service.append_message(match.id, a.id, '  ' + '&' * 4000 + '  ')
        assert len(message.content) == 4000

        with pytest.raises(InvalidInputError):
            services.conversation_service.append_message(match.id, a.id, '<' * 4001)

    def test_unknown_match(self, services, make_profile):
        a = make_profile('Ann')
        with pytest.raises(NotFoundError):
            services.conversation_service.append_message(12345, a.id, 'hello')


class TestListMessages:

    def test_order_follows_call_order(self, services, matched_pair):
        a, b, match = matched_pair
        texts = ['one', 'two', 'three', 'four']
        for i, text in enumerate(texts):
            sender = a if i % 2 == 0 else b
            services.conversation_service.append_message(match.id, sender.id, text)

        messages = services.conversation_service.list_messages(match.id, b.id)

        assert [m.content for m in messages] == texts
        stamps = [m.created_at for m in messages]
        assert stamps == sorted(stamps)

    def test_empty_conversation(self, services, matched_pair):
        a, _, match = matched_pair
        assert services.conversation_service.list_messages(match.id, a.id) == []

    def test_incremental_fetch(self, services, matched_pair):
        a, b, match = matched_pair
        first = services.conversation_service.append_message(match.id, a.id, 'one')
        services.conversation_service.append_message(match.id, b.id, 'two')
        services.conversation_service.append_message(match.id, a.id, 'three')

        newer = services.conversation_service.list_messages(match.id, a.id, after_id=first.id)
        assert [m.content for m in newer] == ['two', 'three']

        page = services.conversation_service.list_messages(match.id, a.id, limit=2)
        assert [m.content for m in page] == ['one', 'two']

    def test_non_participant_cannot_read(self, services, matched_pair, make_profile):
        _, _, match = matched_pair
        stranger = make_profile('Stranger')
        with pytest.raises(UnauthorizedError):
            services.conversation_service.list_messages(match.id, stranger.id)


class TestMarkRead:

    def test_marks_only_counterpart_messages(self, services, matched_pair):
        a, b, match = matched_pair
        services.conversation_service.append_message(match.id, a.id, 'one')
        services.conversation_service.append_message(match.id, a.id, 'two')
        services.conversation_service.append_message(match.id, b.id, 'reply')

        assert services.conversation_service.mark_read(match.id, b.id) == 2
        assert services.conversation_service.mark_read(match.id, b.id) == 0

        unread = Message.query.filter_by(is_read=False).all()
        assert [m.content for m in unread] == ['reply']
