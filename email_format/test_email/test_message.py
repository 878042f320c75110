import datetime
import unittest
from email_format import Email
from email_format import errors
from email_format import message_from_bytes
from email_format import policy
from email_format import utils
from email_format.test_email import TestEmailBase


FROM = 'myself@mydomain.com'
DATE = 'Wed, 05 Jan 2015 15:13:05 +1300'


class TestConstructor(TestEmailBase):

    def test_from_and_date(self):
        m = Email(FROM, DATE)
        self.assertEqual(m.get_from(), FROM)
        self.assertEqual(m.get_date(), DATE)
        self.assertEqual([h.name for h in m.headers()], ['Date', 'From'])
        self.assertEqual(m.get_body(), b'')

    def test_date_from_datetime(self):
        tz = datetime.timezone(datetime.timedelta(hours=13))
        m = Email(FROM, datetime.datetime(2015, 1, 5, 15, 13, 5, tzinfo=tz))
        self.assertEqual(m.get_date(), 'Mon, 05 Jan 2015 15:13:05 +1300')
        self.assertEqual(m.get_date().datetime.utcoffset(),
                         datetime.timedelta(hours=13))

    def test_invalid_from(self):
        err = self.assertGrammarError(Email, 'not an address', DATE,
                                      rule='angle-addr', offset=14)
        self.assertIn('mailbox', err.productions)
        self.assertIn('mailbox-list', err.productions)
        self.assertNotIn('address-list', err.productions)

    def test_from_is_a_mailbox_list(self):
        # RFC 5322 3.6.2: groups are not allowed in From.
        with self.assertRaises(errors.GrammarError):
            Email('Friends: a@x.com;', DATE)

    def test_invalid_date(self):
        self.assertGrammarError(Email, FROM, 'yesterday', rule='day-name',
                                offset=0)

    def test_multiple_authors_need_sender(self):
        with self.assertRaises(errors.MultiplicityError) as cm:
            Email('a@x.com, b@y.com', DATE)
        self.assertEqual(cm.exception.rule, 'sender')
        m = Email('a@x.com, b@y.com', DATE, sender='a@x.com')
        self.assertEqual(m.get_sender().address.addr_spec, 'a@x.com')
        self.assertEqual(len(m.get_from().addresses), 2)

    def test_policy(self):
        m = Email(FROM, DATE, policy=policy.canonical)
        self.assertIs(m.policy, policy.canonical)

    def test_repr(self):
        m = Email(FROM, DATE)
        self.assertEqual(repr(m), "<Email from {!r} at {!r}>".format(
            FROM, DATE))


class TestRequiredFields(TestEmailBase):

    def test_clear_from_rejected(self):
        m = Email(FROM, DATE)
        with self.assertRaises(errors.MultiplicityError) as cm:
            m.clear_from()
        self.assertEqual(cm.exception.rule, 'from')
        self.assertEqual(m.get_from(), FROM)

    def test_clear_date_rejected(self):
        m = Email(FROM, DATE)
        with self.assertRaises(errors.MultiplicityError) as cm:
            m.clear_date()
        self.assertEqual(cm.exception.rule, 'date')

    def test_set_date_replaces(self):
        m = Email(FROM, DATE)
        m.set_date('Thu, 06 Jan 2015 09:00:00 +0000')
        self.assertEqual(m.get_date(), 'Thu, 06 Jan 2015 09:00:00 +0000')
        self.assertEqual([h.name for h in m.headers()], ['Date', 'From'])

    def test_set_from_with_several_mailboxes(self):
        m = Email(FROM, DATE)
        with self.assertRaises(errors.MultiplicityError):
            m.set_from('a@x.com, b@y.com')
        self.assertEqual(m.get_from(), FROM)
        m.set_sender('a@x.com')
        m.set_from('a@x.com, b@y.com')
        self.assertEqual(m.get_from(), 'a@x.com, b@y.com')
        with self.assertRaises(errors.MultiplicityError):
            m.clear_sender()
        self.assertEqual(m.get_sender(), 'a@x.com')


class TestSetters(TestEmailBase):

    def setUp(self):
        self.m = Email(FROM, DATE)

    def test_set_subject_replaces(self):
        self.m.set_subject('first')
        self.m.set_subject('second')
        self.assertEqual(self.m.get_subject(), 'second')
        self.assertEqual(
            [h.name for h in self.m.headers()].count('Subject'), 1)

    def test_invalid_subject_leaves_message_unchanged(self):
        self.m.set_subject('Hello')
        before = self.m.as_bytes()
        self.assertGrammarError(self.m.set_subject, 'Hello M\xfceller',
                                rule='CHAR', offset=7)
        self.assertEqual(self.m.get_subject(), 'Hello')
        self.assertEqual(self.m.as_bytes(), before)

    def test_invalid_to_leaves_old_value(self):
        self.m.set_to('a@x.com')
        self.assertGrammarError(self.m.set_to, 'a@x.com b@y.com',
                                rule='address-list', offset=8)
        self.assertEqual(self.m.get_to(), 'a@x.com')

    def test_invalid_sender(self):
        self.assertGrammarError(self.m.set_sender, 'mike@optcomp.nz[.xyz]',
                                rule='mailbox', offset=15)
        self.assertIsNone(self.m.get_sender())

    def test_set_cc(self):
        self.m.set_cc('A <a@x.com>, B <b@y.com>')
        self.assertEqual([a.display_name for a in self.m.get_cc().addresses],
                         ['A', 'B'])

    def test_set_reply_to_group(self):
        self.m.set_reply_to('List: a@x.com, b@y.com;')
        self.assertEqual(self.m.get_reply_to().groups[0].display_name,
                         'List')

    def test_empty_bcc(self):
        self.m.set_bcc('')
        self.assertEqual(self.m.get_bcc(), '')
        self.assertIn(b'\r\nBcc: \r\n', self.m.as_bytes())

    def test_identification_fields(self):
        msgid = utils.make_msgid(domain='example.com')
        self.m.set_message_id(msgid)
        self.m.set_in_reply_to('<a@example.com>')
        self.m.set_references('<b@example.com> <a@example.com>')
        self.assertEqual(self.m.get_message_id(), msgid)
        self.assertEqual(self.m.get_in_reply_to().msg_ids[0].id_left, 'a')
        self.assertEqual(len(self.m.get_references().msg_ids), 2)
        self.m.clear_references()
        self.assertIsNone(self.m.get_references())

    def test_comments_and_keywords_accumulate(self):
        self.m.add_comments('one')
        self.m.add_comments('two')
        self.m.add_keywords('a, b')
        self.m.add_keywords('c')
        self.assertEqual(self.m.get_comments(), ['one', 'two'])
        self.assertEqual(self.m.get_keywords()[0].keywords, ('a', 'b'))
        self.assertEqual(len(self.m.get_keywords()), 2)
        self.m.clear_comments()
        self.assertEqual(self.m.get_comments(), [])
        self.m.clear_keywords()
        self.assertEqual(self.m.get_keywords(), [])

    def test_clear_absent_field_is_no_op(self):
        before = self.m.headers()
        self.m.clear_subject()
        self.m.clear_to()
        self.assertEqual(self.m.headers(), before)

    def test_setter_values_must_be_strings(self):
        with self.assertRaises(TypeError):
            self.m.set_subject(None)


class TestOptionalFields(TestEmailBase):

    def setUp(self):
        self.m = Email(FROM, DATE)

    def test_repeated_names_allowed(self):
        self.m.add_optional_field(('X-Trace', '1'))
        self.m.add_optional_field(('X-Trace', '2'))
        self.assertEqual(self.m.get_optional_fields(),
                         [('X-Trace', '1'), ('X-Trace', '2')])

    def test_registered_name_rejected(self):
        self.assertGrammarError(self.m.add_optional_field, ('Subject', 'x'),
                                rule='optional-field', offset=0)
        self.assertGrammarError(self.m.add_optional_field, ('subject', 'x'),
                                rule='optional-field', offset=0)

    def test_invalid_name_rejected(self):
        self.assertGrammarError(self.m.add_optional_field, ('Bad Name', 'x'),
                                rule='field-name', offset=3)
        self.assertEqual(self.m.get_optional_fields(), [])

    def test_name_must_fit_on_a_line(self):
        self.assertGrammarError(self.m.add_optional_field,
            ('X-' + 'a' * 1000, 'v'), rule='line-length', offset=0)
        self.assertEqual(self.m.get_optional_fields(), [])
        # "Name: " is exactly 998 characters.
        self.m.add_optional_field(('X-' + 'a' * 994, 'v'))
        for line in self.m.as_bytes().split(b'\r\n'):
            self.assertLessEqual(len(line), 998)

    def test_invalid_value_rejected(self):
        self.assertGrammarError(self.m.add_optional_field,
            ('X-Bell', 'ding\x07'), rule='VCHAR', offset=4)

    def test_clear_optional_fields(self):
        self.m.set_subject('s')
        self.m.add_optional_field(('X-One', '1'))
        self.m.add_optional_field(('X-Two', '2'))
        self.m.clear_optional_fields()
        self.assertEqual(self.m.get_optional_fields(), [])
        self.assertEqual([h.name for h in self.m.headers()],
                         ['Date', 'From', 'Subject'])


class TestHeaderOrder(TestEmailBase):

    def test_fields_placed_in_registry_order(self):
        m = Email(FROM, DATE)
        m.add_optional_field(('X-Trace', '1'))
        m.add_comments('c')
        m.set_subject('s')
        m.set_to('t@x.com')
        m.set_sender('s@x.com')
        self.assertEqual([h.name for h in m.headers()],
            ['Date', 'From', 'Sender', 'To', 'Subject', 'Comments',
             'X-Trace'])

    def test_replaced_field_keeps_position(self):
        m = Email(FROM, DATE)
        m.set_subject('old')
        m.add_optional_field(('X-Trace', '1'))
        m.set_to('t@x.com')
        m.set_subject('new')
        self.assertEqual([h.name for h in m.headers()],
                         ['Date', 'From', 'To', 'Subject', 'X-Trace'])
        self.assertEqual(m.headers()[3], 'new')


class TestBody(TestEmailBase):

    def setUp(self):
        self.m = Email(FROM, DATE)

    def test_set_body(self):
        self.m.set_body('line1\r\nline2\r\n')
        self.assertEqual(self.m.get_body(), b'line1\r\nline2\r\n')
        self.m.set_body(b'raw')
        self.assertEqual(self.m.get_body(), b'raw')

    def test_bare_lf_rejected(self):
        self.m.set_body('good')
        self.assertGrammarError(self.m.set_body, 'bad\nline', rule='CRLF',
                                offset=3)
        self.assertEqual(self.m.get_body(), b'good')

    def test_bare_cr_rejected(self):
        self.assertGrammarError(self.m.set_body, b'bad\rbad', rule='CRLF',
                                offset=3)

    def test_long_line_rejected(self):
        self.m.set_body('x' * 998)
        self.assertGrammarError(self.m.set_body, 'x' * 999,
                                rule='line-length', offset=998)
        self.assertGrammarError(self.m.set_body, 'ok\r\n' + 'x' * 999,
                                rule='line-length', offset=1002)

    def test_non_ascii_rejected(self):
        self.assertGrammarError(self.m.set_body, 'caf\xe9', rule='CHAR',
                                offset=3)
        self.assertGrammarError(self.m.set_body, b'caf\xe9', rule='CHAR',
                                offset=3)
        self.assertGrammarError(self.m.set_body, b'a\x00b', rule='CHAR',
                                offset=1)

    def test_body_type(self):
        with self.assertRaises(TypeError):
            self.m.set_body(42)

    def test_clear_body(self):
        self.m.set_body('text')
        self.m.clear_body()
        self.assertEqual(self.m.get_body(), b'')


class TestSerialization(TestEmailBase):

    def test_as_bytes(self):
        m = Email(FROM, DATE)
        m.set_subject('Hi')
        m.set_body('Body text')
        self.assertEqual(m.as_bytes(),
            b'Date: Wed, 05 Jan 2015 15:13:05 +1300\r\n'
            b'From: myself@mydomain.com\r\n'
            b'Subject: Hi\r\n'
            b'\r\n'
            b'Body text')
        self.assertEqual(bytes(m), m.as_bytes())
        self.assertEqual(str(m), m.as_bytes().decode('ascii'))

    def test_full_message(self):
        m = Email(FROM, DATE)
        m.set_sender('from_myself@mydomain.com')
        m.set_reply_to('My Mailer <no-reply@mydomain.com>')
        m.set_to('You <you@yourdomain.com>')
        m.set_cc('Our Friend <friend@frienddomain.com>')
        m.set_message_id('<id/20161128115731.29084.maelstrom@mydomain.com>')
        m.set_subject('Hello Friend')
        m.set_body('Good to hear from you.\r\n'
                   'I wish you the best.\r\n'
                   '\r\n'
                   'Your Friend')
        self.assertEqual(m.as_bytes(),
            b'Date: Wed, 05 Jan 2015 15:13:05 +1300\r\n'
            b'From: myself@mydomain.com\r\n'
            b'Sender: from_myself@mydomain.com\r\n'
            b'Reply-To: My Mailer <no-reply@mydomain.com>\r\n'
            b'To: You <you@yourdomain.com>\r\n'
            b'Cc: Our Friend <friend@frienddomain.com>\r\n'
            b'Message-ID: <id/20161128115731.29084.maelstrom@mydomain.com>\r\n'
            b'Subject: Hello Friend\r\n'
            b'\r\n'
            b'Good to hear from you.\r\n'
            b'I wish you the best.\r\n'
            b'\r\n'
            b'Your Friend')

    def test_header_objects_accepted_by_setters(self):
        m = Email('mike@sample.com', DATE)
        m.set_date('Fri, 30 Dec 2000 09:11:56 -1100')
        date = m.get_date()
        m.set_date('Wed, 06 Jan 2015 15:13:05 +1300')
        self.assertNotEqual(m.get_date(), date)
        m.set_date(date)
        self.assertEqual(m.get_date(), date)
        m.set_cc('mike@sample.com, webmaster@sample.com')
        cc = m.get_cc()
        m.set_cc('mike@sample2.com')
        m.set_cc(cc)
        self.assertEqual(m.get_cc(), 'mike@sample.com, webmaster@sample.com')

    def test_canonical_values_written(self):
        m = Email('  Me  <me@x.com> (really)', ' 5 jan 2015 15:13 EST')
        self.assertEqual(m.as_bytes(),
            b'Date: 05 Jan 2015 15:13 -0500\r\n'
            b'From: Me <me@x.com>\r\n'
            b'\r\n')

    def test_round_trip(self):
        m = Email(FROM, DATE)
        m.set_to('A <a@x.com>, Friends: b@y.com, c@z.com;')
        m.set_subject('We the willing led by the unknowing are doing the '
                      'impossible for the ungrateful.')
        m.add_optional_field(('X-Trace', 'abc'))
        m.set_body('Hello\r\n')
        data = m.as_bytes()
        m2 = message_from_bytes(data)
        self.assertEqual(m2, m)
        self.assertEqual(m2.as_bytes(), data)

    def test_inequality(self):
        m1 = Email(FROM, DATE)
        m2 = Email(FROM, DATE)
        self.assertEqual(m1, m2)
        m2.set_body('x')
        self.assertNotEqual(m1, m2)
        self.assertNotEqual(m1, 'not a message')


if __name__ == '__main__':
    unittest.main()
