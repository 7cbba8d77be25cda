"""
Exceptions raised by conversion steps.

:return : Exception classes.
:return: ConversionError for fatal, input-shape dependent failures.
"""


class ConversionError(ValueError):
    """
    Fatal conversion failure.

    Raised when the input model has a shape the conversion cannot handle
    (missing start or end node, wrong loop arity, non-unary fan where one
    incoming and one outgoing edge are required). Entry points turn it into
    an entry of the ``errors`` list of the conversion result.
    """
