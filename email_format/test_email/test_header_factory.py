import unittest
from email_format import header
from email_format.test_email import TestEmailBase


class TestHeaderFactory(TestEmailBase):

    def test_arbitrary_name_unstructured(self):
        factory = header.HeaderFactory()
        h = factory('foobar', 'test')
        self.assertIsInstance(h, header.BaseHeader)
        self.assertIsInstance(h, header.UnstructuredHeader)
        self.assertEqual(h.name, 'foobar')

    def test_name_case_ignored(self):
        factory = header.HeaderFactory()
        # Whitebox check that test is valid
        self.assertNotIn('Subject', factory.registry)
        h = factory('SUBJECT', 'test')
        self.assertIsInstance(h, header.BaseHeader)
        self.assertIsInstance(h, header.UniqueUnstructuredHeader)
        self.assertEqual(h.name, 'Subject')

    class FooBase:
        def __init__(self, *args, **kw):
            pass

    def test_override_default_base_class(self):
        factory = header.HeaderFactory(base_class=self.FooBase)
        h = factory('foobar', 'test')
        self.assertIsInstance(h, self.FooBase)
        self.assertIsInstance(h, header.UnstructuredHeader)

    class FooDefault:
        parse = header.UnstructuredHeader.parse

    def test_override_default_class(self):
        factory = header.HeaderFactory(default_class=self.FooDefault)
        h = factory('foobar', 'test')
        self.assertIsInstance(h, header.BaseHeader)
        self.assertIsInstance(h, self.FooDefault)

    def test_override_default_class_only_overrides_default(self):
        factory = header.HeaderFactory(default_class=self.FooDefault)
        h = factory('subject', 'test')
        self.assertIsInstance(h, header.BaseHeader)
        self.assertIsInstance(h, header.UniqueUnstructuredHeader)

    def test_dont_use_default_map(self):
        factory = header.HeaderFactory(use_default_map=False)
        h = factory('subject', 'test')
        self.assertIsInstance(h, header.BaseHeader)
        self.assertIsInstance(h, header.UnstructuredHeader)
        self.assertNotIn('subject', factory)
        self.assertEqual(h.name, 'subject')

    def test_map_to_type(self):
        factory = header.HeaderFactory()
        h1 = factory('foobar', 'test')
        factory.map_to_type('FooBar', header.UniqueUnstructuredHeader)
        h2 = factory('foobar', 'test')
        self.assertIsInstance(h1, header.BaseHeader)
        self.assertIsInstance(h1, header.UnstructuredHeader)
        self.assertIsInstance(h2, header.BaseHeader)
        self.assertIsInstance(h2, header.UniqueUnstructuredHeader)
        self.assertEqual(h2.name, 'FooBar')

    def test_map_to_type_rejects_bad_field_name(self):
        factory = header.HeaderFactory()
        self.assertGrammarError(factory.map_to_type, 'Bad Name',
            header.UnstructuredHeader, rule='field-name', offset=3)
        self.assertGrammarError(factory.map_to_type, 'Bad:Name',
            header.UnstructuredHeader, rule='field-name', offset=3)
        self.assertNotIn('bad name', factory.registry)

    def test_map_to_type_rejects_name_longer_than_a_line(self):
        factory = header.HeaderFactory()
        self.assertGrammarError(factory.map_to_type, 'X-' + 'a' * 997,
            header.UnstructuredHeader, rule='line-length', offset=0)
        self.assertEqual(len(factory.registry), 13)

    def test_registered_classes(self):
        factory = header.HeaderFactory()
        expected = [
            ('date', header.DateHeader),
            ('from', header.MailboxListHeader),
            ('sender', header.SingleAddressHeader),
            ('reply-to', header.AddressHeader),
            ('to', header.AddressHeader),
            ('cc', header.AddressHeader),
            ('bcc', header.BccHeader),
            ('message-id', header.MessageIDHeader),
            ('in-reply-to', header.MessageIDListHeader),
            ('references', header.MessageIDListHeader),
            ('subject', header.UniqueUnstructuredHeader),
            ('comments', header.UnstructuredHeader),
            ('keywords', header.KeywordsHeader),
            ]
        self.assertEqual(list(factory.registry.items()), expected)

    def test_canonical_name(self):
        factory = header.HeaderFactory()
        self.assertEqual(factory.canonical_name('message-id'), 'Message-ID')
        self.assertEqual(factory.canonical_name('REPLY-TO'), 'Reply-To')
        self.assertEqual(factory.canonical_name('x-Unknown'), 'x-Unknown')

    def test_contains(self):
        factory = header.HeaderFactory()
        self.assertIn('FROM', factory)
        self.assertIn('in-reply-to', factory)
        self.assertNotIn('X-Trace', factory)

    def test_rank(self):
        factory = header.HeaderFactory()
        self.assertEqual(factory.rank('Date'), 0)
        self.assertEqual(factory.rank('from'), 1)
        self.assertEqual(factory.rank('Keywords'), 12)
        self.assertIsNone(factory.rank('X-Trace'))
        factory.map_to_type('X-Trace', header.UnstructuredHeader)
        self.assertEqual(factory.rank('x-trace'), 13)

    def test_factories_are_independent(self):
        f1 = header.HeaderFactory()
        f2 = header.HeaderFactory()
        f1.map_to_type('X-Foo', header.UniqueUnstructuredHeader)
        self.assertIn('X-Foo', f1)
        self.assertNotIn('X-Foo', f2)


if __name__ == '__main__':
    unittest.main()
