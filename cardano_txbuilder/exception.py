class TxBuilderException(Exception):
    pass


class InvalidDataException(TxBuilderException):
    pass


class InvalidArgumentException(TxBuilderException):
    pass


class SerializeException(TxBuilderException):
    pass


class DeserializeException(TxBuilderException):
    pass


class InvalidTransactionException(TxBuilderException):
    pass


class AssetException(TxBuilderException):
    pass


class InvalidAssetNameException(AssetException):
    pass


class TransactionBuilderException(TxBuilderException):
    pass


class BuilderConsumedException(TransactionBuilderException):
    pass


class ValidationException(TransactionBuilderException):
    pass


class NoInputsException(ValidationException):
    pass


class InvalidCollateralInputException(ValidationException):
    pass


class InvalidCollateralReturnException(ValidationException):
    pass


class InvalidTimestampException(ValidationException):
    pass


class RedeemerPurposeMissingException(ValidationException):
    def __init__(self, purpose, message=None):
        super().__init__(
            message or f"Redeemer purpose does not match any target: {purpose}"
        )
        self.purpose = purpose


class UnsupportedRedeemerPurposeException(RedeemerPurposeMissingException):
    def __init__(self, purpose):
        super().__init__(
            purpose, f"Redeemer purpose is not supported by the builder: {purpose}"
        )


class MalformedScriptException(DeserializeException):
    pass


class MalformedDatumException(DeserializeException):
    pass


class MalformedDatumHashException(InvalidDataException):
    pass


class InvalidNetworkIdException(InvalidDataException):
    pass


class CorruptedTxBytesException(DeserializeException):
    pass
