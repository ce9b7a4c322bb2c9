import asyncio

from services.irc.api.chat import IrcChatClient


class _Writer:
    def __init__(self):
        self.lines = []

    def write(self, payload):
        self.lines.append(payload.decode("utf-8").rstrip("\r\n"))

    async def drain(self):
        return None

    def close(self):
        return None

    async def wait_closed(self):
        return None


def _client(**kwargs):
    return IrcChatClient("irc.example.org", 6667, "TallyBot", "tallybot", **kwargs)


def test_channel_is_normalized():
    assert _client().channel == "#tallybot"
    assert IrcChatClient("h", 1, "n", "#already").channel == "#already"


def test_parse_privmsg():
    client = _client()
    msg = client._parse_privmsg(":alice!al@host.example PRIVMSG #tallybot :beer++ now")

    assert msg.nick == "alice"
    assert msg.user == "al"
    assert msg.host == "host.example"
    assert msg.target == "#tallybot"
    assert msg.text == "beer++ now"
    assert msg.is_channel

    event = msg.to_event()
    assert event["platform"] == "irc"
    assert event["text"] == "beer++ now"
    assert event["user"]["name"] == "alice"


def test_parse_privmsg_with_server_time_tag():
    client = _client()
    msg = client._parse_privmsg(
        "@time=2024-05-01T12:00:00.000Z :bob!b@h PRIVMSG #tallybot :hi"
    )
    assert msg.timestamp is not None
    assert msg.timestamp.year == 2024
    assert msg.to_event()["timestamp"].startswith("2024-05-01T12:00:00")


def test_non_privmsg_lines_are_ignored():
    client = _client()
    assert client._parse_privmsg(":server 372 TallyBot :- motd") is None
    assert client._parse_privmsg(":alice!a@h JOIN #tallybot") is None


def test_split_prefix_and_command():
    prefix, command, params = IrcChatClient._split_prefix_and_command(
        ":nick!u@h privmsg #chan :hello world"
    )
    assert prefix == "nick!u@h"
    assert command == "PRIVMSG"
    assert params == ("#chan", "hello world")


def test_tls_context_respects_verify_flag():
    assert _client()._ssl_context() is None
    insecure = _client(use_tls=True, tls_verify=False)._ssl_context()
    assert insecure.check_hostname is False
    assert _client(use_tls=True)._ssl_context().check_hostname is True


def test_iter_messages_handles_ping_welcome_and_privmsg():
    async def scenario():
        client = _client()
        client.writer = _Writer()
        client.reader = asyncio.StreamReader()
        client.reader.feed_data(
            b"PING :irc.example.org\r\n"
            b":irc.example.org 433 * TallyBot :Nickname is already in use\r\n"
            b":irc.example.org 001 TallyBot_ :Welcome\r\n"
            b":carol!c@h PRIVMSG #tallybot :tea++\r\n"
        )
        client.reader.feed_eof()

        messages = [msg async for msg in client.iter_messages()]
        return client, messages

    client, messages = asyncio.run(scenario())

    assert [m.text for m in messages] == ["tea++"]
    assert client.writer.lines == [
        "PONG :irc.example.org",
        "NICK TallyBot_",
        "JOIN #tallybot",
    ]
    assert client.joined
    assert client.nickname == "TallyBot_"


def test_split_tags_without_command():
    assert IrcChatClient._split_tags("@badtag") == ({}, "")
    assert IrcChatClient._split_tags("@time=x;flag") == ({"time": "x"}, "")


def test_iter_messages_skips_tags_only_line():
    async def scenario():
        client = _client()
        client.writer = _Writer()
        client.reader = asyncio.StreamReader()
        client.reader.feed_data(
            b"@badtag\r\n"
            b":a!u@h PRIVMSG #c :x++\r\n"
        )
        client.reader.feed_eof()

        return [msg async for msg in client.iter_messages()]

    messages = asyncio.run(scenario())

    assert [(m.nick, m.target, m.text) for m in messages] == [("a", "#c", "x++")]


def test_send_message_splits_lines():
    async def scenario():
        client = _client()
        client.writer = _Writer()
        await client.send_message("one\n\ntwo")
        return client.writer.lines

    assert asyncio.run(scenario()) == [
        "PRIVMSG #tallybot :one",
        "PRIVMSG #tallybot :two",
    ]
