"""Provides forms for the console."""

from wtforms import Form, IntegerField, SelectField
from wtforms.validators import InputRequired, NumberRange


class InstallStateForm(Form):
    """Enable or disable an installation."""

    installation_id = IntegerField('Installation ID', name='installationID',
                                   validators=[InputRequired(),
                                               NumberRange(min=1)])
    state = SelectField('State', choices=[('enable', 'Enable'),
                                          ('disable', 'Disable')],
                        validators=[InputRequired()])
