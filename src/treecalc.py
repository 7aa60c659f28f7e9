import collections, logging, math, operator

logger = logging.getLogger(__name__)

# Node kinds.  The kind of an operator node is the text of its token.
VALUE = 'value'
GROUP_OPEN = '('
GROUP_CLOSE = ')'
PLUS = '+'
MINUS = '-'
TIMES = '*'
DIVIDE = '/'
POWER = '^'
FACTORIAL = '!'

# Token kinds that never become nodes.
QUIT = 'q'
END = 'end'

# Larger number = binds looser.  Groups are structural and sit below everything else.
precedence_table = {
    GROUP_OPEN: 0, GROUP_CLOSE: 0,
    VALUE: 1,
    FACTORIAL: 2,
    POWER: 3,
    TIMES: 4, DIVIDE: 4,
    PLUS: 5, MINUS: 5,
    }

# Largest n for which n! is a finite double.
factorial_limit = 170

operator_chars = '+-*/^!()'
skip_chars = ' \t\r;'


class TreecalcError(Exception): pass

class StructuralError(TreecalcError):
    def __init__(self, column, errtext):
        self.column = column
        self.errtext = errtext

    def __str__(self):
        if self.column is None:
            return self.errtext
        return 'Column %d: %s' % (self.column, self.errtext)

class EvaluationError(TreecalcError): pass
class UnmatchedParenError(EvaluationError): pass
class DivideByZeroError(EvaluationError): pass
class DomainError(EvaluationError): pass
class ArityError(EvaluationError): pass


def Divide(x, y):
    if y == 0:
        raise DivideByZeroError('Division by zero')
    return x / y

def RealPower(x, y):
    """!
    @brief x**y over the reals, with C pow() results where Python would raise.
    Negative base with a fractional exponent gives nan, 0 to a negative power gives inf,
    and overflow gives a signed inf.
    """
    odd_exponent = math.isfinite(y) and y == math.floor(y) and math.fmod(y, 2) != 0
    try:
        return math.pow(x, y)
    except OverflowError:
        if x < 0 and odd_exponent:
            return -math.inf
        return math.inf
    except ValueError:
        if x == 0:
            return math.copysign(math.inf, x) if odd_exponent else math.inf
        return math.nan

def Factorial(x):
    if not math.isfinite(x) or x != math.floor(x):
        raise DomainError('Factorial of %s: not an integer' % (x,))
    if x < 0:
        raise DomainError('Factorial of %s: negative' % (x,))
    if x > factorial_limit:
        raise DomainError('Factorial of %s: larger than %d' % (x, factorial_limit))
    return float(math.factorial(int(x)))

binary_operations = {
    PLUS: operator.add,
    MINUS: operator.sub,
    TIMES: operator.mul,
    DIVIDE: Divide,
    POWER: RealPower,
    }


class Node:
    """!
    @brief One node of the expression tree.
    Children are owned; parent is only used to find the slot to rewrite during a rotation.
    """
    def __init__(self, kind, number=None, column=None):
        if kind not in precedence_table:
            raise ValueError('Unknown node kind %r' % (kind,))
        self.kind = kind
        self.number = number
        self.column = column
        self.children = []
        self.parent = None

    def __repr__(self):
        if self.kind == VALUE:
            return 'Node(value, %r)' % (self.number,)
        return 'Node(%r)' % (self.kind,)

    def precedence(self):
        return precedence_table[self.kind]

    def is_closed_group(self):
        return (self.kind == GROUP_OPEN
                and len(self.children) > 0 and self.children[-1].kind == GROUP_CLOSE)

    def is_full(self):
        """!
        @return True if no more children may be attached directly.
        """
        if self.kind in (VALUE, GROUP_CLOSE):
            return True
        if self.kind == GROUP_OPEN:
            return self.is_closed_group()
        if self.kind == FACTORIAL:
            return len(self.children) == 1
        return len(self.children) == 2

    def value(self):
        """!
        @brief Compute the value of the subtree rooted here.
        @return A float.
        Raises an EvaluationError subclass if the subtree is malformed or the arithmetic is undefined.
        @par
        Walks the tree with an explicit stack, so depth is limited by memory, not by recursion.
        Structure is checked when a node is first reached, arithmetic is done once its operands are.
        """
        results = []
        stack = [(self, False)]
        while stack:
            node, operands_done = stack.pop()
            operands = node._operands()
            if operands_done:
                n = len(operands)
                args = results[len(results)-n:]
                del results[len(results)-n:]
                results.append(node._compute(args))
            else:
                node._check()
                stack.append((node, True))
                stack.extend((child, False) for child in reversed(operands))
        return results[0]

    def _operands(self):
        # A group's closing node carries no value.
        if self.kind == GROUP_OPEN:
            return self.children[:1]
        return self.children

    def _check(self):
        kind = self.kind
        if kind == GROUP_OPEN:
            if not self.is_closed_group():
                raise UnmatchedParenError("')' expected")
            if len(self.children) < 2:
                raise ArityError('Empty parentheses')
        elif kind == FACTORIAL:
            if len(self.children) != 1:
                raise ArityError("'!' needs exactly one operand")
        elif kind in binary_operations:
            if len(self.children) != 2:
                raise ArityError("'%s' needs two operands" % (kind,))

    def _compute(self, args):
        kind = self.kind
        if kind == VALUE:
            return self.number
        if kind == GROUP_CLOSE:
            return 0.0
        if kind == GROUP_OPEN:
            return args[0]
        if kind == FACTORIAL:
            return Factorial(args[0])
        return binary_operations[kind](args[0], args[1])


class SyntaxTree:
    """!
    @brief An expression tree that is built one node at a time.

    The root is an implicit group standing for the whole line.  Open groups are kept on a stack;
    every new node is routed to the innermost one, and from there descends along the rightmost
    path until it either rotates above a node that binds tighter, or finds a free child slot.
    """
    def __init__(self):
        self.root = Node(GROUP_OPEN)
        self._open_groups = [self.root]

    def insert(self, node):
        """!
        @brief Add the next node of the line.
        @param[in] node		A Node, not yet part of any tree.
        Raises StructuralError if the node has no place to go.
        """
        if len(self._open_groups) == 0:
            raise StructuralError(node.column, 'Input after end of expression')
        group = self._open_groups[-1]
        logger.debug('insert %r into %r (depth %d)', node, group, len(self._open_groups))

        if node.kind == GROUP_CLOSE:
            if group is self.root:
                raise StructuralError(node.column, "Unmatched ')'")
            self._close(group, node)
            return

        if len(group.children) == 0 and node.kind == MINUS:
            # Leading minus: subtract from zero.
            self._attach(group, Node(VALUE, 0.0, column=node.column))
        if len(group.children) == 0:
            self._check_operand_before(node)
            self._attach(group, node)
        else:
            self._insert_below(group.children[0], node)
        if node.kind == GROUP_OPEN:
            self._open_groups.append(node)

    def finish(self):
        """!
        @brief Mark end of line.
        Closes the innermost open group.  If that is not the root, the root stays open and
        evaluate() will report the missing ')'.
        """
        if len(self._open_groups) == 0:
            raise StructuralError(None, 'Expression already finished')
        self._close(self._open_groups[-1], Node(GROUP_CLOSE))

    def evaluate(self):
        """!
        @return The value of the line as a float.
        """
        children = self.root.children
        if len(children) == 0:
            raise UnmatchedParenError("')' expected")
        if len(children) == 1 and children[0].kind == GROUP_CLOSE:
            raise ArityError('Empty expression')
        return self.root.value()

    def dump(self):
        """!
        @return The tree as text, one node per line, indented by depth.
        """
        lines = []
        stack = [(self.root, 0)]
        while stack:
            node, depth = stack.pop()
            if node.kind == VALUE:
                lines.append('%svalue, %s' % ('  '*depth, node.number))
            else:
                lines.append('%s%s' % ('  '*depth, node.kind))
            stack.extend((child, depth+1) for child in reversed(node.children))
        return '\n'.join(lines)

    def _insert_below(self, current, node):
        while 1:
            if current.kind == GROUP_CLOSE:
                raise StructuralError(node.column, "Unexpected '%s' after ')'" % (node.kind,))
            if node.kind != VALUE and node.precedence() >= current.precedence():
                self._rotate(current, node)
                return
            if current.kind == VALUE:
                raise StructuralError(node.column, 'Operator expected before %s' % (Describe(node),))
            if current.is_full():
                current = current.children[-1]
            else:
                self._check_operand_before(node)
                self._attach(current, node)
                return

    def _check_operand_before(self, node):
        # '!' is postfix: it only enters the tree by rotating above its operand.
        if node.kind == FACTORIAL:
            raise StructuralError(node.column, "'!' needs an operand before it")

    def _rotate(self, current, node):
        parent = current.parent
        if parent is None:
            raise StructuralError(node.column, 'Cannot rotate the root group')
        logger.debug('rotate %r above %r', node, current)
        parent.children[-1] = node
        node.parent = parent
        node.children.append(current)
        current.parent = node

    def _attach(self, parent, node):
        logger.debug('attach %r to %r', node, parent)
        node.parent = parent
        parent.children.append(node)

    def _close(self, group, node):
        logger.debug('close %r', group)
        self._attach(group, node)
        self._open_groups.pop()


def Describe(node):
    if node.kind == VALUE:
        return 'number %s' % (node.number,)
    return "'%s'" % (node.kind,)


Token = collections.namedtuple('Token', ['kind', 'number', 'column'])


def ReadChars(stream):
    """!
    @brief Lazily yield the characters of a text stream, one at a time.
    """
    while 1:
        ch = stream.read(1)
        if ch == '':
            return
        yield ch


class CharSource:
    """!
    @brief A character iterator with one character of pushback.
    """
    def __init__(self, chars):
        """!
        @param[in] chars	An iterable of single characters, e.g. a str or ReadChars(sys.stdin).
        """
        self._chars = iter(chars)
        self._pushed = []
        self.at_eof = False
        self.column = 0

    def get(self):
        """!
        @return The next character, or None at end of input.
        """
        if self._pushed:
            ch = self._pushed.pop()
        else:
            try:
                ch = next(self._chars)
            except StopIteration:
                self.at_eof = True
                return None
        if ch == '\n':
            self.column = 0
        else:
            self.column += 1
        return ch

    def putback(self, ch):
        self._pushed.append(ch)
        self.column -= 1

    def skip_line(self):
        """!
        @brief Discard input up to and including the next newline.
        """
        while 1:
            ch = self.get()
            if ch is None or ch == '\n':
                return


class Lexer:
    def __init__(self, source):
        """!
        @param[in] source	A CharSource.  Characters are read only as tokens are requested.
        """
        self._source = source

    def line_tokens(self):
        """!
        @brief Yield the tokens of one line.
        The last token is always an END token, produced at newline or end of input.
        """
        while 1:
            tok = self.next_token()
            yield tok
            if tok.kind == END:
                return

    def next_token(self):
        source = self._source
        while 1:
            ch = source.get()
            if ch is None or ch == '\n':
                return Token(END, None, source.column)
            if ch not in skip_chars:
                break
        column = source.column
        if ch in operator_chars:
            return Token(ch, None, column)
        if ch.isdigit() or ch == '.':
            return Token(VALUE, self._number(ch, column), column)
        if ch == 'q':
            return Token(QUIT, None, column)
        raise StructuralError(column, 'Unexpected character %r' % (ch,))

    def _number(self, first, column):
        source = self._source
        text = [first]
        ch = source.get()
        while ch is not None and (ch.isdigit() or ch == '.'):
            text.append(ch)
            ch = source.get()
        if ch is not None and ch in 'eE':
            text.append(ch)
            ch = source.get()
            if ch is not None and ch in '+-':
                text.append(ch)
                ch = source.get()
            while ch is not None and ch.isdigit():
                text.append(ch)
                ch = source.get()
        if ch is not None:
            source.putback(ch)
        literal = ''.join(text)
        try:
            return float(literal)
        except ValueError:
            raise StructuralError(column, 'Invalid number %r' % (literal,))


def MakeNode(tok):
    """!
    @brief Turn a token into a tree node.
    """
    if tok.kind == VALUE:
        return Node(VALUE, tok.number, column=tok.column)
    if tok.kind in (QUIT, END):
        raise StructuralError(tok.column, "Unexpected '%s'" % (tok.kind,))
    return Node(tok.kind, column=tok.column)


def BuildTree(tokens):
    """!
    @brief Feed tokens to a fresh SyntaxTree up to the END token.
    @param[in] tokens	An iterable of Token, e.g. Lexer(...).line_tokens().
    @return The finished SyntaxTree.
    """
    tree = SyntaxTree()
    for tok in tokens:
        if tok.kind == END:
            break
        tree.insert(MakeNode(tok))
    tree.finish()
    return tree


def Evaluate(text):
    """!
    @brief Compute the value of the first line of text.
    @param[in] text		A str such as '2+3*4'.
    @return A float.
    Raises StructuralError for malformed input and an EvaluationError subclass if it cannot be computed.
    """
    tree = BuildTree(Lexer(CharSource(text)).line_tokens())
    return tree.evaluate()
