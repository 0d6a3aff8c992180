"""Tests for Council member identity lookup."""

from council_relay.identities import IDENTITIES, IdentityResolver


class TestIdentityResolver:
    def test_known_members(self, identities):
        assert all(identities.is_known(bot_id) for bot_id in IDENTITIES)
        assert not identities.is_known("stranger")
        assert not identities.is_known(None)

    def test_display_name(self, identities):
        assert identities.display_name("sensei") == "Portdev"
        assert identities.display_name("stranger") == "stranger"

    def test_credential_from_settings(self, identities):
        assert identities.credential("chad") == "james-token"
        assert identities.credential("quantum") is None
        assert identities.credential(None) is None

    def test_no_settings_means_main_bot(self):
        assert IdentityResolver().credential("chad") is None

    def test_from_username(self, identities):
        assert identities.from_username("@JamesCouncilBot") == "chad"
        assert identities.from_username("mikecouncilbot") == "oracle"
        assert identities.from_username("SomeOtherBot") is None
        assert identities.from_username(None) is None

    def test_configured(self, identities):
        configured = identities.configured()
        assert configured["chad"] is True
        assert configured["oracle"] is False
