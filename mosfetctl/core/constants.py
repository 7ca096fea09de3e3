"""Register map and protocol limits for the 8-MOSFET board."""

MIN_CHANNEL = 1
MAX_CHANNEL = 8
CHANNEL_COUNT = 8

MIN_LEVEL = 0
MAX_LEVEL = 7

OUTPUT_PORT_REG = 0x01
CONFIG_REG = 0x03
PWM_BASE_REG = 0x07
PWM_SIZE = 2
SERIAL_SETTINGS_REG = PWM_BASE_REG + CHANNEL_COUNT * PWM_SIZE
SERIAL_SETTINGS_SIZE = 5
PWM_FREQUENCY_REG = SERIAL_SETTINGS_REG + SERIAL_SETTINGS_SIZE
PWM_FREQUENCY_SIZE = 2

# Output-port pattern with every channel OFF (inverted polarity).
ALL_OFF_WIRE = 0xFF

MIN_DUTY = 0.0
MAX_DUTY = 100.0
DUTY_SCALE = 10

MIN_FREQUENCY_HZ = 16
MAX_FREQUENCY_HZ = 1000

MIN_BAUD = 1200
MAX_BAUD = 921600
SERIAL_MODES = (0, 1)  # 0 = disabled, 1 = Modbus RTU slave
SERIAL_STOP_BITS = (1, 2)
SERIAL_PARITIES = (0, 1, 2)  # none, even, odd
MIN_SLAVE_ADDRESS = 1
MAX_SLAVE_ADDRESS = 255

DEFAULT_VERIFY_ATTEMPTS = 10
