import os
import unittest
from email_format import message_from_bytes
from email_format import errors
from email_format import policy


# used by __main__.
def test_main():
    here = os.path.dirname(__file__)
    suite = unittest.defaultTestLoader.discover(here)
    unittest.TextTestRunner().run(suite)


# Base test class
class TestEmailBase(unittest.TestCase):

    maxDiff = None
    # We put this here so we can see what happens to the tests if
    # we change some defaults.
    policy = policy.default

    def __init__(self, *args, **kw):
        super().__init__(*args, **kw)
        self.addTypeEqualityFunc(bytes, self.assertBytesEqual)

    ndiffAssertEqual = unittest.TestCase.assertEqual

    def _msgobj(self, data):
        return message_from_bytes(data, policy=self.policy)

    def _bytes_repr(self, b):
        return [repr(x) for x in b.splitlines(True)]

    def assertBytesEqual(self, first, second, msg):
        """Our byte strings are really encoded strings; improve diff output"""
        self.assertEqual(self._bytes_repr(first), self._bytes_repr(second))

    def assertGrammarError(self, func, *args, rule, offset=None):
        """Call func(*args) and check the GrammarError it raises."""
        with self.assertRaises(errors.GrammarError) as cm:
            func(*args)
        err = cm.exception
        self.assertEqual(err.rule, rule, str(err))
        if offset is not None:
            self.assertEqual(err.offset, offset, str(err))
        return err
