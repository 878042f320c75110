"""Classes to generate RFC 5322 byte streams from Email objects."""

__all__ = ['BytesGenerator']

import logging

logger = logging.getLogger(__name__)

NL = '\r\n'


class BytesGenerator:

    """Generates a bytes version of an Email object tree.

    Every line written is terminated by CRLF and is at most 998 characters
    long; header fields are folded at their white space as directed by the
    policy.  The body is written exactly as stored.
    """

    def __init__(self, outfp, maxheaderlen=None, policy=None):
        """Create the generator for message flattening.

        outfp is the output file-like object for writing the message to.  It
        must have a write() method that accepts bytes.

        Optional maxheaderlen specifies the longest length for a non-continued
        header.  When a header line is longer than maxheaderlen, the header
        will split as defined in the header module.  Zero folds only lines
        that would exceed 998 characters.  The default is taken from the
        policy.

        The policy keyword specifies a policy object that controls a number of
        aspects of the generator's operation.  The default is the policy of
        the message being flattened.

        """
        self._fp = outfp
        self.maxheaderlen = maxheaderlen
        self.policy = policy

    def write(self, s):
        self._fp.write(s.encode('ascii'))

    def flatten(self, msg):
        """Print the message object tree rooted at msg to the output file.

        Returns the number of octets written.
        """
        policy = msg.policy if self.policy is None else self.policy
        if self.maxheaderlen is not None:
            policy = policy.clone(max_line_length=self.maxheaderlen)
        size = 0
        for h in msg.headers():
            folded = h.fold(policy=policy)
            self.write(folded)
            size += len(folded)
        # A blank line always ends the headers.
        self.write(NL)
        body = msg.get_body()
        self._fp.write(body)
        size += len(NL) + len(body)
        logger.debug("wrote %d header fields, %d octets", len(msg.headers()),
                     size)
        return size

    def clone(self, fp):
        """Clone this generator with the exact same options."""
        return self.__class__(fp, self.maxheaderlen, self.policy)
